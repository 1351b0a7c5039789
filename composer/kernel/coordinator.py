"""
Template Composer Kernel — Persistence & Publish Coordinator

Reconciles the local draft with its remote identity.

  Unsynced (id is None) --save--> store.create --> Synced
  Synced                --save--> store.update

Saves run one at a time behind an asyncio.Lock, so a save queued behind a
create sees the id that create returned and updates instead of creating
a second record.

Every request is stamped with the session revision it was built from. If
the session moved on before the response came back, the response is not
applied; only the backend id is bound.

Publish is optimistic: the flag flips locally, the document is persisted,
and on failure only the flag is restored.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any

from composer.kernel.document import template_from_dict, template_to_dict
from composer.kernel.session import EditSession
from composer.kernel.storage import TemplateStore
from composer.kernel.types import PublishState, SaveResult, Template

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """A create/update round trip failed. The local draft is untouched."""

    def __init__(self, operation: str, template_id: str | None, cause: BaseException):
        self.operation = operation
        self.template_id = template_id
        self.cause = cause
        target = template_id or "unsaved draft"
        super().__init__(f"{operation} failed for {target}: {cause}")


class PublishError(PersistenceError):
    """Publishing or unpublishing failed and the flag was rolled back."""


class PersistenceCoordinator:
    def __init__(self, store: TemplateStore, session: EditSession):
        self.store = store
        self.session = session
        self.saving = False
        self.last_error: PersistenceError | None = None
        self.publish_state = PublishState.IDLE
        self._lock = asyncio.Lock()

    @property
    def sync_state(self) -> str:
        return "synced" if self.session.template.is_synced else "unsynced"

    # -- Save ----------------------------------------------------------------

    async def save(self) -> SaveResult:
        async with self._lock:
            return await self._persist("save")

    async def _persist(self, operation: str) -> SaveResult:
        template = self.session.template
        issued = self.session.revision
        created = template.id is None
        payload = template_to_dict(template)

        response: Any = None
        self.saving = True
        try:
            if created:
                response = await self.store.create(payload)
                if not isinstance(response, dict) or response.get("id") in (None, ""):
                    raise ValueError("create response carries no id")
            else:
                response = await self.store.update(template.id, payload)
            saved = _merge_response(template, response)
        except Exception as e:
            if created and isinstance(response, dict) and response.get("id") not in (None, ""):
                # The record exists remotely; keep its id so the retry updates it.
                self.session.bind_remote_id(str(response["id"]))
            error = PersistenceError(operation, self.session.template.id, e)
            self.last_error = error
            logger.warning("coordinator: %s failed for template_id=%s: %s", operation, error.template_id, e)
            raise error from e
        finally:
            self.saving = False

        applied = self.session.apply_remote(saved, issued)
        self.last_error = None

        logger.info(
            "coordinator: %s %s template_id=%s revision=%d%s",
            operation,
            "created" if created else "updated",
            saved.id,
            issued,
            "" if applied else " (stale)",
        )
        return SaveResult(template=self.session.template, created=created, stale=not applied, revision=issued)

    # -- Publish -------------------------------------------------------------

    async def publish(self) -> SaveResult:
        return await self._set_published(True)

    async def unpublish(self) -> SaveResult:
        return await self._set_published(False)

    async def toggle_publish(self) -> SaveResult:
        async with self._lock:
            return await self._publish_locked(not self.session.template.is_published)

    async def _set_published(self, published: bool) -> SaveResult:
        async with self._lock:
            return await self._publish_locked(published)

    async def _publish_locked(self, published: bool) -> SaveResult:
        operation = "publish" if published else "unpublish"
        previous = self.session.template.is_published

        self.publish_state = PublishState.PENDING
        self.session.set_published(published)
        try:
            result = await self._persist(operation)
        except PersistenceError as e:
            self.session.set_published(previous)
            self.publish_state = PublishState.ROLLED_BACK
            error = PublishError(operation, e.template_id, e.cause)
            self.last_error = error
            logger.warning("coordinator: %s rolled back for template_id=%s", operation, e.template_id)
            raise error from e.cause

        self.publish_state = PublishState.COMMITTED
        return result


def _merge_response(local: Template, response: dict[str, Any]) -> Template:
    """
    The persisted snapshot as the session should see it.

    A response that echoes the document is taken as-is; an identity-only
    response keeps the local document and adopts id and timestamps.
    """
    if "pages" in response:
        saved = template_from_dict(response)
        if saved.id is None:
            saved = replace(saved, id=local.id)
        return saved

    raw_id = response.get("id")
    return replace(
        local,
        id=str(raw_id) if raw_id not in (None, "") else local.id,
        created_at=response.get("created_at", local.created_at),
        updated_at=response.get("updated_at", local.updated_at),
    )
