"""Run tracing for AI calls.

Runs are recorded against the LangSmith REST API. Tracing is best-effort:
every failure is logged at WARNING and swallowed so the traced call proceeds.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Protocol

import httpx

from autocrm.core.config import settings

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class RunTracer(Protocol):
    async def create_run(
        self, name: str, inputs: dict[str, Any], start_time: int
    ) -> str | None: ...

    async def update_run(self, run_id: str | None, **fields: Any) -> None: ...


class NullTracer:
    """Tracer used when no LangSmith key is configured."""

    async def create_run(
        self, name: str, inputs: dict[str, Any], start_time: int
    ) -> str | None:
        return None

    async def update_run(self, run_id: str | None, **fields: Any) -> None:
        return None


class LangSmithTracer:
    """Post run create/update records to LangSmith."""

    def __init__(
        self,
        api_key: str,
        endpoint: str = "https://api.smith.langchain.com",
        project: str = "auto-crm",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.endpoint = endpoint.rstrip("/")
        self.project = project
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.endpoint,
            timeout=10.0,
            transport=self._transport,
            headers={"x-api-key": self.api_key},
        )

    async def create_run(
        self, name: str, inputs: dict[str, Any], start_time: int
    ) -> str | None:
        run_id = str(uuid.uuid4())
        body = {
            "id": run_id,
            "name": name,
            "run_type": "chain",
            "inputs": inputs,
            "start_time": start_time,
            "session_name": self.project,
        }
        try:
            async with self._client() as client:
                response = await client.post("/runs", json=body)
                response.raise_for_status()
        except Exception as e:
            logger.warning(f"Failed to create LangSmith run '{name}': {e}")
            return None
        return run_id

    async def update_run(self, run_id: str | None, **fields: Any) -> None:
        if not run_id:
            return
        try:
            async with self._client() as client:
                response = await client.patch(f"/runs/{run_id}", json=fields)
                response.raise_for_status()
        except Exception as e:
            logger.warning(f"Failed to update LangSmith run {run_id}: {e}")


def build_tracer() -> RunTracer:
    if settings.LANGSMITH_API_KEY:
        return LangSmithTracer(
            settings.LANGSMITH_API_KEY,
            endpoint=settings.LANGSMITH_ENDPOINT,
            project=settings.LANGSMITH_PROJECT,
        )
    return NullTracer()
