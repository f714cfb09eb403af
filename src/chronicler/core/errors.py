"""Error taxonomy for the ingestion pipeline.

Adapters translate driver exceptions into these types at their boundary so
that collectors and the tracer only ever handle ``ChroniclerError``.
"""


class ChroniclerError(Exception):
    """Base class for all agent errors."""


class BackendConnectionError(ChroniclerError):
    """The storage backend could not be reached at startup."""


class WriteError(ChroniclerError):
    """A single insert or batch insert failed. The records are dropped."""


class ResolutionError(ChroniclerError):
    """No running container matches the configured microservice name."""


class FetchError(ChroniclerError):
    """An external metrics collaborator failed to produce a sample."""


class ConfigError(ChroniclerError, ValueError):
    """The agent configuration is missing a value or holds an invalid one."""


class ReadError(ChroniclerError):
    """Stored records could not be read back."""
