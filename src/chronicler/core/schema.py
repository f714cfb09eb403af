"""Collection layouts shared by every storage backend.

Each logical collection is described once by a ``CollectionSpec``. The
document backend uses ``document_name`` and stores one document per record
keyed by the column names; the relational backend uses ``table_name`` and
the SQL types and constraints. Because both backends derive stored values
from the same CollectionSpec, they hold field-for-field equivalent data.
"""

import dataclasses
from dataclasses import dataclass, field
from typing import Any

from chronicler.core.models import (
    CommunicationRecord,
    ContainerRecord,
    HealthRecord,
    MetricRecord,
    Service,
)

KAFKA_SERVICE_NAME = "kafkametrics"


@dataclass(frozen=True)
class Column:
    """A stored field.

    Attributes:
        name: Stored column/document key.
        attr: Attribute on the record dataclass.
        sql_type: Relational column type.
        constraints: Extra relational column constraints (e.g., DEFAULT 0.0).
    """

    name: str
    attr: str
    sql_type: str
    constraints: str = ""


@dataclass(frozen=True)
class CollectionSpec:
    """A logical collection of one record type.

    Attributes:
        document_name: Collection name in the document store.
        table_name: Table name in the relational store.
        record_type: Dataclass stored in this collection.
        columns: Stored fields, in insert order.
        order_by: Columns giving the natural read order.
        partition: Column/value pair selecting this collection's rows when
            several collections share one table.
        unique: Column that identifies a record, if any.
    """

    document_name: str
    table_name: str
    record_type: type
    columns: tuple[Column, ...]
    order_by: tuple[str, ...] = ()
    partition: tuple[str, str] | None = None
    unique: str | None = None
    _attrs: tuple[str, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_attrs", tuple(c.attr for c in self.columns))

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.columns)

    def to_row(self, record: Any) -> tuple[Any, ...]:
        """Convert a record to stored values in column order."""
        if not isinstance(record, self.record_type):
            raise TypeError(
                f"{self.document_name} stores {self.record_type.__name__}, "
                f"got {type(record).__name__}"
            )
        return tuple(getattr(record, attr) for attr in self._attrs)

    def to_document(self, record: Any) -> dict[str, Any]:
        """Convert a record to a document keyed by column name."""
        return dict(zip(self.column_names, self.to_row(record), strict=True))

    def from_row(self, row: Any) -> Any:
        """Rebuild a record from stored values in column order."""
        kwargs = dict(zip(self._attrs, row, strict=True))
        for f in dataclasses.fields(self.record_type):
            if f.type in ("float", float) and kwargs.get(f.name) is not None:
                kwargs[f.name] = float(kwargs[f.name])
        return self.record_type(**kwargs)

    def from_document(self, document: dict[str, Any]) -> Any:
        """Rebuild a record from a stored document."""
        return self.from_row(tuple(document.get(name) for name in self.column_names))


_SAMPLE_COLUMNS = (
    Column("metric", "metric", "VARCHAR(200)"),
    Column("value", "value", "FLOAT", "DEFAULT 0.0"),
    Column("category", "category", "VARCHAR(200)", "DEFAULT 'event'"),
    Column("time", "timestamp", "REAL", "DEFAULT (CAST(strftime('%s', 'now') AS REAL))"),
)

SERVICES = CollectionSpec(
    document_name="services",
    table_name="services",
    record_type=Service,
    columns=(
        Column("microservice", "microservice", "VARCHAR(248)", "NOT NULL UNIQUE"),
        Column("interval", "interval", "INTEGER", "NOT NULL"),
    ),
    unique="microservice",
)

COMMUNICATIONS = CollectionSpec(
    document_name="communications",
    table_name="communications",
    record_type=CommunicationRecord,
    columns=(
        Column("microservice", "microservice", "VARCHAR(248)", "NOT NULL"),
        Column("endpoint", "endpoint", "VARCHAR(248)", "NOT NULL"),
        Column("request", "method", "VARCHAR(16)", "NOT NULL"),
        Column("responsestatus", "status_code", "INTEGER", "NOT NULL"),
        Column("responsemessage", "status_message", "VARCHAR(500)", "NOT NULL"),
        Column("correlatingId", "correlation_id", "VARCHAR(500)"),
        _SAMPLE_COLUMNS[3],
    ),
    order_by=("time",),
)

KAFKA_METRICS = CollectionSpec(
    document_name=KAFKA_SERVICE_NAME,
    table_name=KAFKA_SERVICE_NAME,
    record_type=MetricRecord,
    columns=_SAMPLE_COLUMNS,
    order_by=("time",),
)


def health_collection(microservice: str) -> CollectionSpec:
    """Return the health collection named after the microservice."""
    return CollectionSpec(
        document_name=microservice,
        table_name=microservice,
        record_type=HealthRecord,
        columns=_SAMPLE_COLUMNS,
        order_by=("time",),
    )


def container_collection(container_name: str) -> CollectionSpec:
    """Return the container-info collection for a single container.

    The document store keeps one ``<name>-containerinfo`` collection per
    container; the relational store shares a ``containerInfo`` table
    partitioned by ``containerName``.
    """
    return CollectionSpec(
        document_name=f"{container_name}-containerinfo",
        table_name="containerInfo",
        record_type=ContainerRecord,
        columns=(
            Column("microservice", "microservice", "VARCHAR(500)", "NOT NULL"),
            Column("containerName", "container_name", "VARCHAR(500)", "NOT NULL"),
            Column("containerId", "container_id", "VARCHAR(500)", "NOT NULL"),
            Column("containerPlatform", "platform", "VARCHAR(500)"),
            Column("containerStartTime", "start_time", "VARCHAR(500)"),
            Column("containerMemUsage", "mem_usage", "REAL", "DEFAULT 0"),
            Column("containerMemLimit", "mem_limit", "REAL", "DEFAULT 0"),
            Column("containerMemPercent", "mem_percent", "REAL", "DEFAULT 0"),
            Column("containerCpuPercent", "cpu_percent", "REAL", "DEFAULT 0"),
            Column("networkReceived", "network_received", "REAL", "DEFAULT 0"),
            Column("networkSent", "network_sent", "REAL", "DEFAULT 0"),
            Column("containerProcessCount", "process_count", "INTEGER", "DEFAULT 0"),
            Column("containerRestartCount", "restart_count", "INTEGER", "DEFAULT 0"),
            _SAMPLE_COLUMNS[3],
        ),
        order_by=("time",),
        partition=("containerName", container_name),
    )
