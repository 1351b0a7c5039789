"""
Template Composer Kernel — Template Stores

The persistence collaborator behind the coordinator:

    create(payload) -> dict   carries the new backend id
    update(template_id, payload) -> dict

MemoryTemplateStore keeps records in a dict and can inject failures and
latency. HttpTemplateStore talks to the REST backend with httpx.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from typing import Any

import httpx
from pydantic import ValidationError

from composer.config import settings
from composer.kernel.types import now_iso
from composer.models.template_api import StoreError, TemplateRecord

logger = logging.getLogger(__name__)


class StoreResponseError(Exception):
    """The store answered, but not with a usable template record."""


class TemplateStore:
    """Interface for the remote template collaborator."""

    async def create(self, payload: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    async def update(self, template_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError


class MemoryTemplateStore(TemplateStore):
    """
    In-process store.

    `calls` records ("create" | "update", template_id) in arrival order.
    `fail_with(exc, times)` makes the next `times` calls raise.
    `delay` is awaited inside every call so tests can interleave edits.
    `echo_document=False` answers with identity and timestamps only.
    """

    def __init__(self, delay: float = 0.0, echo_document: bool = True):
        self.records: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str | None]] = []
        self.delay = delay
        self.echo_document = echo_document
        self._failure: BaseException | None = None
        self._failures_left = 0

    def fail_with(self, exc: BaseException, times: int = 1) -> None:
        self._failure = exc
        self._failures_left = times

    async def _enter(self, operation: str, template_id: str | None) -> None:
        self.calls.append((operation, template_id))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self._failures_left > 0:
            self._failures_left -= 1
            raise self._failure

    def _answer(self, record: dict[str, Any]) -> dict[str, Any]:
        if self.echo_document:
            return copy.deepcopy(record)
        return {key: record[key] for key in ("id", "created_at", "updated_at")}

    async def create(self, payload: dict[str, Any]) -> dict[str, Any]:
        await self._enter("create", None)
        template_id = str(uuid.uuid4())
        stamp = now_iso()
        record = copy.deepcopy(payload)
        record.update({"id": template_id, "created_at": stamp, "updated_at": stamp})
        self.records[template_id] = record
        return self._answer(record)

    async def update(self, template_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        await self._enter("update", template_id)
        if template_id not in self.records:
            raise KeyError(f"Template {template_id} not found")
        record = copy.deepcopy(payload)
        record.update(
            {
                "id": template_id,
                "created_at": self.records[template_id].get("created_at"),
                "updated_at": now_iso(),
            }
        )
        self.records[template_id] = record
        return self._answer(record)


class HttpTemplateStore(TemplateStore):
    """REST store: POST /templates/ to create, PUT /templates/{id}/ to update."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, transport: httpx.AsyncBaseTransport | None = None) -> HttpTemplateStore:
        if not settings.TEMPLATE_STORE_URL:
            raise RuntimeError("TEMPLATE_STORE_URL environment variable is required")
        return cls(
            settings.TEMPLATE_STORE_URL,
            token=settings.TEMPLATE_STORE_TOKEN or None,
            timeout=settings.TEMPLATE_STORE_TIMEOUT,
            transport=transport,
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _send(self, method: str, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        res = await self.client.request(method, path, json=payload, headers=self._headers())
        if res.is_error:
            detail = _error_detail(res)
            logger.warning("storage: %s %s failed with %d: %s", method, path, res.status_code, detail)
        res.raise_for_status()

        try:
            record = TemplateRecord.model_validate(res.json())
        except (ValueError, ValidationError) as e:
            raise StoreResponseError(f"{method} {path} returned an invalid template record: {e}") from e
        return record.model_dump(exclude_unset=True)

    async def create(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._send("POST", "/templates/", payload)

    async def update(self, template_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._send("PUT", f"/templates/{template_id}/", payload)

    async def aclose(self) -> None:
        await self.client.aclose()


def _error_detail(res: httpx.Response) -> str:
    try:
        return str(StoreError.model_validate(res.json()).detail)
    except (ValueError, ValidationError):
        return res.text[:200]
