"""Example FastAPI application instrumented by a chronicler agent.

Run with:
    uvicorn examples.fastapi_example:app --reload

Every request is recorded in the ``communications`` table of
``chronicler.db``; host health is sampled every five seconds into the
``orders`` table. Failed responses are posted to Slack when
``SLACK_WEBHOOK`` is set.

Endpoints:
    /orders/{order_id}    - Returns an order (404 for unknown ids)
    /slow                 - Takes a moment to answer
    /boom                 - Fails with 500
"""

import asyncio
import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException

from chronicler import Agent, AgentConfig

logging.basicConfig(level=logging.INFO)

settings = {
    "microservice": "orders",
    "interval": 5000,
    "database": {"type": "sqlite", "URI": "sqlite:///chronicler.db"},
    "dockerized": os.environ.get("DOCKERIZED") == "1",
}
if webhook := os.environ.get("SLACK_WEBHOOK"):
    settings["notifications"] = [{"type": "slack", "settings": {"webhook": webhook}}]

agent = Agent(AgentConfig.from_dict(settings))

ORDERS = {1: {"id": 1, "item": "keyboard"}, 2: {"id": 2, "item": "monitor"}}


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    await agent.start()
    yield
    await agent.stop()


api = FastAPI(title="Chronicler Example", lifespan=lifespan)


@api.get("/orders/{order_id}")
async def get_order(order_id: int) -> dict[str, object]:
    if order_id not in ORDERS:
        raise HTTPException(status_code=404, detail="Order not found")
    return ORDERS[order_id]


@api.get("/slow")
async def slow() -> dict[str, str]:
    await asyncio.sleep(0.5)
    return {"status": "done"}


@api.get("/boom")
async def boom() -> dict[str, str]:
    raise HTTPException(status_code=500, detail="Something broke")


# Wrap the application so uvicorn serves the traced app
app = agent.middleware(api)
