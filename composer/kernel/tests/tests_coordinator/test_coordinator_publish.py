"""
Template Composer Coordinator — Publish State Machine

IDLE → PENDING → COMMITTED | ROLLED_BACK. A failed publish restores only
the flag; edits made meanwhile are kept.
"""

import asyncio

import pytest

from composer.kernel.coordinator import PersistenceCoordinator, PublishError
from composer.kernel.storage import MemoryTemplateStore
from composer.kernel.types import PublishState


@pytest.fixture
def coordinator(store, session):
    return PersistenceCoordinator(store, session)


class TestPublish:
    @pytest.mark.asyncio
    async def test_publish_unsynced_draft_creates(self, coordinator, store, session):
        assert coordinator.publish_state is PublishState.IDLE
        result = await coordinator.publish()
        assert result.created
        assert session.template.is_published
        assert store.records[session.template.id]["is_published"] is True
        assert coordinator.publish_state is PublishState.COMMITTED

    @pytest.mark.asyncio
    async def test_unpublish_updates(self, coordinator, store, session):
        await coordinator.publish()
        await coordinator.unpublish()
        assert not session.template.is_published
        assert store.calls[-1][0] == "update"
        assert store.records[session.template.id]["is_published"] is False

    @pytest.mark.asyncio
    async def test_toggle(self, coordinator, session):
        await coordinator.toggle_publish()
        assert session.template.is_published
        await coordinator.toggle_publish()
        assert not session.template.is_published

    @pytest.mark.asyncio
    async def test_pending_while_in_flight(self, session):
        coordinator = PersistenceCoordinator(MemoryTemplateStore(delay=0.02), session)
        task = asyncio.create_task(coordinator.publish())
        await asyncio.sleep(0.005)
        assert coordinator.publish_state is PublishState.PENDING
        assert session.template.is_published
        await task
        assert coordinator.publish_state is PublishState.COMMITTED


class TestRollback:
    @pytest.mark.asyncio
    async def test_failed_publish_restores_flag(self, coordinator, store, session):
        store.fail_with(ConnectionError("offline"))
        with pytest.raises(PublishError) as exc:
            await coordinator.publish()
        assert not session.template.is_published
        assert coordinator.publish_state is PublishState.ROLLED_BACK
        assert coordinator.last_error is exc.value
        assert exc.value.operation == "publish"

    @pytest.mark.asyncio
    async def test_rollback_keeps_concurrent_edits(self, session):
        store = MemoryTemplateStore(delay=0.02)
        store.fail_with(ConnectionError("offline"))
        coordinator = PersistenceCoordinator(store, session)
        task = asyncio.create_task(coordinator.publish())
        await asyncio.sleep(0.005)
        sid = session.add_section().target_id
        with pytest.raises(PublishError):
            await task
        assert not session.template.is_published
        assert sid in session.template.sections

    @pytest.mark.asyncio
    async def test_failed_unpublish_restores_published(self, coordinator, store, session):
        await coordinator.publish()
        store.fail_with(ConnectionError("offline"))
        with pytest.raises(PublishError):
            await coordinator.unpublish()
        assert session.template.is_published
        assert coordinator.publish_state is PublishState.ROLLED_BACK


class MalformedEchoStore(MemoryTemplateStore):
    """Creates the record but echoes a document that cannot be rebuilt."""

    async def create(self, payload):
        record = await super().create(payload)
        return {"id": record["id"], "pages": ["not-a-page"]}


class TestMalformedResponse:
    @pytest.mark.asyncio
    async def test_publish_rolls_back_and_binds_created_id(self, session):
        store = MalformedEchoStore()
        coordinator = PersistenceCoordinator(store, session)
        with pytest.raises(PublishError) as exc:
            await coordinator.publish()
        assert coordinator.publish_state is PublishState.ROLLED_BACK
        assert not session.template.is_published
        assert session.template.id in store.records
        assert exc.value.template_id == session.template.id

    @pytest.mark.asyncio
    async def test_retry_updates_instead_of_creating_again(self, session):
        store = MalformedEchoStore()
        coordinator = PersistenceCoordinator(store, session)
        with pytest.raises(PublishError):
            await coordinator.publish()
        await coordinator.save()
        assert [op for op, _ in store.calls] == ["create", "update"]
        assert len(store.records) == 1
