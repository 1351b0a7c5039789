"""
Template Composer Coordinator — Save

Unsynced drafts are created, synced templates are updated, saves are
serialized so a draft is never created twice, and responses for a
superseded revision only bind the backend id.
"""

import asyncio

import pytest

from composer.kernel.coordinator import PersistenceCoordinator, PersistenceError
from composer.kernel.session import EditSession
from composer.kernel.storage import MemoryTemplateStore


@pytest.fixture
def coordinator(store, session):
    return PersistenceCoordinator(store, session)


class TestCreateOrUpdate:
    @pytest.mark.asyncio
    async def test_first_save_creates(self, coordinator, store, session):
        assert coordinator.sync_state == "unsynced"
        result = await coordinator.save()
        assert result.created
        assert not result.stale
        assert store.calls == [("create", None)]
        assert session.template.id in store.records
        assert session.template.created_at is not None
        assert coordinator.sync_state == "synced"

    @pytest.mark.asyncio
    async def test_second_save_updates(self, coordinator, store, session):
        await coordinator.save()
        session.update_template({"title": "Renamed"})
        result = await coordinator.save()
        assert not result.created
        assert store.calls[-1] == ("update", session.template.id)
        assert store.records[session.template.id]["title"] == "Renamed"

    @pytest.mark.asyncio
    async def test_saved_document_matches_session(self, store, contract):
        session = EditSession(contract)
        await PersistenceCoordinator(store, session).save()
        record = store.records[session.template.id]
        assert [s["title"] for s in record["pages"][0]["sections"]] == [
            "Service Agreement Terms",
            "Client Information",
            "Signatures",
        ]
        assert record["metadata"]["variables"][0]["name"] == "client_name"

    @pytest.mark.asyncio
    async def test_identity_only_response_keeps_local_document(self, session):
        store = MemoryTemplateStore(echo_document=False)
        session.add_section()
        local_sections = dict(session.template.sections)
        await PersistenceCoordinator(store, session).save()
        assert session.template.id is not None
        assert session.template.sections == local_sections


class TestConcurrentSaves:
    """
    Two saves fired at once on an unsynced draft yield one create and one update.
    """

    @pytest.mark.asyncio
    async def test_single_create(self, session):
        store = MemoryTemplateStore(delay=0.02)
        coordinator = PersistenceCoordinator(store, session)
        first, second = await asyncio.gather(coordinator.save(), coordinator.save())
        assert [op for op, _ in store.calls] == ["create", "update"]
        assert first.created and not second.created
        assert len(store.records) == 1

    @pytest.mark.asyncio
    async def test_saving_flag(self, session):
        store = MemoryTemplateStore(delay=0.02)
        coordinator = PersistenceCoordinator(store, session)
        task = asyncio.create_task(coordinator.save())
        await asyncio.sleep(0.005)
        assert coordinator.saving
        await task
        assert not coordinator.saving


class TestStaleResponses:
    """
    Edits made while a save is in flight survive its response.
    """

    @pytest.mark.asyncio
    async def test_stale_create_binds_id_only(self, session):
        store = MemoryTemplateStore(delay=0.02)
        coordinator = PersistenceCoordinator(store, session)
        task = asyncio.create_task(coordinator.save())
        await asyncio.sleep(0.005)
        session.update_template({"title": "Edited mid-flight"})
        result = await task

        assert result.stale
        assert result.revision == 0
        assert session.template.title == "Edited mid-flight"
        assert session.template.id is not None

        await coordinator.save()
        assert [op for op, _ in store.calls] == ["create", "update"]
        assert store.records[session.template.id]["title"] == "Edited mid-flight"


class TestFailures:
    @pytest.mark.asyncio
    async def test_failure_raises_and_keeps_draft(self, coordinator, store, session):
        session.add_section()
        before = session.template
        store.fail_with(ConnectionError("backend down"))
        with pytest.raises(PersistenceError) as exc:
            await coordinator.save()
        assert exc.value.operation == "save"
        assert exc.value.template_id is None
        assert isinstance(exc.value.cause, ConnectionError)
        assert coordinator.last_error is exc.value
        assert session.template is before
        assert not coordinator.saving

    @pytest.mark.asyncio
    async def test_retry_after_failure(self, coordinator, store, session):
        store.fail_with(ConnectionError("blip"))
        with pytest.raises(PersistenceError):
            await coordinator.save()
        result = await coordinator.save()
        assert result.created
        assert coordinator.last_error is None

    @pytest.mark.asyncio
    async def test_create_without_id_is_an_error(self, session):
        class NoIdStore(MemoryTemplateStore):
            async def create(self, payload):
                return {"title": payload["title"]}

        with pytest.raises(PersistenceError):
            await PersistenceCoordinator(NoIdStore(), session).save()
        assert session.template.id is None

    @pytest.mark.asyncio
    async def test_unreadable_update_response_is_an_error(self, coordinator, store, session):
        await coordinator.save()

        async def broken_update(template_id, payload):
            return ["not", "a", "record"]

        store.update = broken_update
        with pytest.raises(PersistenceError) as exc:
            await coordinator.save()
        assert isinstance(exc.value.cause, AttributeError)
        assert not coordinator.saving
