"""BDD step definitions for request tracing features.

Every scenario owns one event loop, so the backend connection, the
agent's timers and the tracer's background writes all live on it.
"""

import asyncio
from collections.abc import Generator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
import pytest
from pytest_bdd import given, parsers, then, when

from chronicler import Agent, AgentConfig
from chronicler.core.schema import COMMUNICATIONS, SERVICES
from tests.support import FakeHostSource, RecordingChannel, make_app


@dataclass
class TracingScenarioContext:
    """Shared state between steps in a tracing scenario."""

    loop: asyncio.AbstractEventLoop
    db_path: str
    settings: dict[str, Any] = field(default_factory=dict)
    channel: RecordingChannel = field(default_factory=RecordingChannel)
    agent: Agent | None = None
    app: Any = None
    responses: list[httpx.Response] = field(default_factory=list)

    def run(self, coro: Any) -> Any:
        """Run a coroutine on the scenario's loop."""
        return self.loop.run_until_complete(coro)

    def build_agent(self) -> Agent:
        config = AgentConfig.from_dict(self.settings)
        return Agent(
            config,
            host_source=FakeHostSource(),
            channels=[self.channel],
        )


@pytest.fixture
def ctx(tmp_path: Path) -> Generator[TracingScenarioContext, None, None]:
    """Fresh scenario context, with its own event loop, for each test."""
    loop = asyncio.new_event_loop()
    context = TracingScenarioContext(loop=loop, db_path=str(tmp_path / "agent.db"))
    yield context
    if context.agent is not None:
        context.run(context.agent.stop())
    loop.close()


async def _serve(ctx: TracingScenarioContext, statuses: list[int]) -> None:
    assert ctx.agent is not None
    for status in statuses:
        ctx.app = ctx.agent.middleware(make_app(status=status))
        transport = httpx.ASGITransport(app=ctx.app)
        async with httpx.AsyncClient(
            transport=transport, base_url="http://test"
        ) as client:
            ctx.responses.append(await client.get(f"/orders/{status}"))
        await ctx.app.drain()


# === Background Steps ===
@given(parsers.parse('an agent for "{name}" polling every {interval:d} ms'))
def step_agent_settings(ctx: TracingScenarioContext, name: str, interval: int) -> None:
    ctx.settings.update(microservice=name, interval=interval)


@given("a relational store")
def step_relational_store(ctx: TracingScenarioContext) -> None:
    ctx.settings["database"] = {"type": "sqlite", "URI": f"sqlite:///{ctx.db_path}"}


@given("slack notifications are configured")
def step_slack_notifications(ctx: TracingScenarioContext) -> None:
    ctx.settings["notifications"] = [
        {"type": "slack", "settings": {"webhook": "https://hooks.slack.test/T000"}}
    ]


@given("the store is unreachable")
def step_store_unreachable(ctx: TracingScenarioContext) -> None:
    missing = Path(ctx.db_path).parent / "missing" / "agent.db"
    ctx.settings["database"] = {"type": "sqlite", "URI": str(missing)}


# === Action Steps ===
@when("the agent is started")
def step_start_agent(ctx: TracingScenarioContext) -> None:
    ctx.agent = ctx.build_agent()
    ctx.run(ctx.agent.start())


@when("the agent is restarted")
def step_restart_agent(ctx: TracingScenarioContext) -> None:
    assert ctx.agent is not None
    ctx.run(ctx.agent.stop())
    ctx.agent = ctx.build_agent()
    ctx.run(ctx.agent.start())


@when(parsers.parse("requests answer with statuses {statuses}"))
def step_requests(ctx: TracingScenarioContext, statuses: str) -> None:
    codes = [int(s) for s in statuses.replace(" and ", ", ").split(",")]
    ctx.run(_serve(ctx, codes))


# === Outcome Steps ===
@then(parsers.parse('{count:d} communication records are stored for "{name}"'))
def step_records_stored(ctx: TracingScenarioContext, count: int, name: str) -> None:
    assert ctx.agent is not None
    records = ctx.run(ctx.agent.backend.read(COMMUNICATIONS))
    assert len(records) == count
    assert {r.microservice for r in records} == {name}
    assert sorted(r.status_code for r in records) == [200, 404, 500]


@then(parsers.parse("{count:d} alerts are sent"))
def step_alerts_sent(ctx: TracingScenarioContext, count: int) -> None:
    assert len(ctx.channel.sent) == count
    assert {code for code, _, _ in ctx.channel.sent} == {404, 500}


@then(parsers.parse('the last communication record has status {code:d} "{message}"'))
def step_last_record(ctx: TracingScenarioContext, code: int, message: str) -> None:
    assert ctx.agent is not None
    records = ctx.run(ctx.agent.backend.read(COMMUNICATIONS))
    assert records[-1].status_code == code
    assert records[-1].status_message == message


@then(parsers.parse('"{name}" is recorded once in services'))
def step_recorded_once(ctx: TracingScenarioContext, name: str) -> None:
    assert ctx.agent is not None
    services = ctx.run(ctx.agent.backend.read(SERVICES))
    assert [s.microservice for s in services] == [name]


@then("every response is delivered")
def step_responses_delivered(ctx: TracingScenarioContext) -> None:
    assert ctx.responses
    assert all(r.status_code == 200 and r.text == "OK" for r in ctx.responses)


@then("the agent recorded no communications")
def step_no_communications(ctx: TracingScenarioContext) -> None:
    assert ctx.agent is not None
    assert not ctx.agent.backend.connected
