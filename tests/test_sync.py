"""Tests for the remote sync gateway."""
from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, Mock, patch

import aiohttp
import pytest

from custom_components.ramadhanjournal.const import CLASSES, DEFAULT_SETTINGS, SEED_PEOPLE_PER_CLASS
from custom_components.ramadhanjournal.storage import JournalLocalStore
from custom_components.ramadhanjournal.sync import RemoteSyncGateway, seed_people

ENDPOINT = "https://script.example.com/exec"
SESSION = "custom_components.ramadhanjournal.sync.async_get_clientsession"


def _ctx(response):
    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=response)
    ctx.__aexit__ = AsyncMock(return_value=False)
    return ctx


def _session_returning(payload, status=200):
    response = Mock(status=status)
    response.json = AsyncMock(return_value=payload)
    session = Mock()
    session.get = Mock(return_value=_ctx(response))
    session.post = Mock(return_value=_ctx(Mock(status=200)))
    return session


@pytest.fixture
def store():
    def _fake_store(hass, version, key):
        return Mock(key=key, version=version, async_load=AsyncMock(return_value=None), async_save=AsyncMock())

    with patch("custom_components.ramadhanjournal.storage.Store", side_effect=_fake_store):
        return JournalLocalStore(Mock())


class TestSeeding:
    """Test the offline placeholder data."""

    def test_seed_people_deterministic(self):
        people = seed_people()

        assert len(people) == len(CLASSES) * SEED_PEOPLE_PER_CLASS
        assert people[0]["id"] == "stu_0_1"
        assert people[0]["className"] == CLASSES[0]
        assert people == seed_people()

    @pytest.mark.asyncio
    async def test_offline_pull_seeds_empty_cache(self, mock_hass, store):
        gateway = RemoteSyncGateway(mock_hass, None)

        assert await gateway.async_pull(store) is False

        assert len(store.get_collection("people")) == len(CLASSES) * SEED_PEOPLE_PER_CLASS
        assert store.get_collection("content_items")[0]["id"] == "mat_1"
        assert store.get_collection("announcements")[0]["id"] == "bc_1"
        assert gateway.online is False

    @pytest.mark.asyncio
    async def test_offline_pull_keeps_cached_people(self, mock_hass, store):
        store._data["people"] = [{"id": "stu_x", "name": "Cached"}]
        gateway = RemoteSyncGateway(mock_hass, "")

        await gateway.async_pull(store)

        assert store.get_collection("people") == [{"id": "stu_x", "name": "Cached"}]
        assert store.get_collection("content_items") == []


class TestPull:
    """Test pulling the remote snapshot."""

    @pytest.mark.asyncio
    async def test_full_snapshot_replaces_collections(self, mock_hass, store):
        store._data["people"] = [{"id": "old"}]
        snapshot = {
            "students": [{"id": "stu_1", "name": "Ahmad", "points": 40}],
            "materials": [{"id": "mat_9", "title": "Zakat"}],
            "broadcasts": [],
            "settings": {"schoolName": "SMPN 1 Mojokerto"},
        }
        session = _session_returning(snapshot)

        with patch(SESSION, return_value=session):
            gateway = RemoteSyncGateway(mock_hass, ENDPOINT)
            assert await gateway.async_pull(store) is True

        assert store.get_collection("people") == snapshot["students"]
        assert store.get_collection("content_items") == snapshot["materials"]
        assert store.get_collection("announcements") == []
        settings = store.get_collection("settings")
        assert settings["schoolName"] == "SMPN 1 Mojokerto"
        assert settings["adminPassword"] == DEFAULT_SETTINGS["adminPassword"]
        assert gateway.online is True
        assert gateway.last_pull is not None

        params = session.get.call_args.kwargs["params"]
        assert params["action"] == "getData"
        assert params["_"].isdigit()

    @pytest.mark.asyncio
    async def test_partial_snapshot_leaves_other_collections(self, mock_hass, store):
        store._data["content_items"] = [{"id": "mat_1", "title": "Niat"}]

        with patch(SESSION, return_value=_session_returning({"students": [{"id": "stu_1"}]})):
            await RemoteSyncGateway(mock_hass, ENDPOINT).async_pull(store)

        assert store.get_collection("people") == [{"id": "stu_1"}]
        assert store.get_collection("content_items") == [{"id": "mat_1", "title": "Niat"}]

    @pytest.mark.asyncio
    async def test_malformed_field_skipped(self, mock_hass, store, caplog):
        store._data["content_items"] = [{"id": "mat_1"}]
        snapshot = {"students": [{"id": "stu_1"}], "materials": "#ERROR!", "broadcasts": [{"message": "no id"}]}

        with patch(SESSION, return_value=_session_returning(snapshot)):
            assert await RemoteSyncGateway(mock_hass, ENDPOINT).async_pull(store) is True

        assert store.get_collection("content_items") == [{"id": "mat_1"}]
        assert store.get_collection("announcements") == []
        assert "Ignoring malformed materials" in caplog.text
        assert "Ignoring malformed broadcasts" in caplog.text

    @pytest.mark.asyncio
    async def test_failed_pull_falls_back_to_cache(self, mock_hass, store, caplog):
        store._data["people"] = [{"id": "stu_1", "points": 55}]
        session = Mock()
        session.get = Mock(side_effect=aiohttp.ClientError("offline"))

        with patch(SESSION, return_value=session):
            gateway = RemoteSyncGateway(mock_hass, ENDPOINT)
            assert await gateway.async_pull(store) is False

        assert store.get_collection("people") == [{"id": "stu_1", "points": 55}]
        assert gateway.online is False
        assert "using local data" in caplog.text

    @pytest.mark.asyncio
    async def test_failed_pull_seeds_empty_cache(self, mock_hass, store):
        with patch(SESSION, return_value=_session_returning(None, status=500)):
            await RemoteSyncGateway(mock_hass, ENDPOINT).async_pull(store)

        assert store.get_collection("people")[0]["id"] == "stu_0_1"

    @pytest.mark.asyncio
    async def test_non_object_snapshot(self, mock_hass, store):
        with patch(SESSION, return_value=_session_returning(["not", "a", "snapshot"])):
            assert await RemoteSyncGateway(mock_hass, ENDPOINT).async_pull(store) is False


class TestPush:
    """Test fire-and-forget pushes."""

    @pytest.mark.asyncio
    async def test_emit_without_endpoint_is_skipped(self, mock_hass):
        RemoteSyncGateway(mock_hass, None).emit("saveStudent", {"id": "stu_1"})
        mock_hass.async_create_background_task.assert_not_called()

    @pytest.mark.asyncio
    async def test_emit_schedules_background_task(self, mock_hass):
        RemoteSyncGateway(mock_hass, ENDPOINT).emit("saveStudent", {"id": "stu_1"})

        mock_hass.async_create_background_task.assert_called_once()
        assert mock_hass.async_create_background_task.call_args.kwargs["name"] == "ramadhanjournal push saveStudent"

    @pytest.mark.asyncio
    async def test_send_posts_action_envelope(self, mock_hass):
        session = _session_returning({})
        gateway = RemoteSyncGateway(mock_hass, ENDPOINT)

        with patch(SESSION, return_value=session):
            await gateway._async_send("saveMaterial", {"id": "mat_1", "title": "Zakat"})

        kwargs = session.post.call_args.kwargs
        assert session.post.call_args.args[0] == ENDPOINT
        assert kwargs["headers"] == {"Content-Type": "text/plain"}
        assert json.loads(kwargs["data"]) == {
            "action": "saveMaterial",
            "payload": {"id": "mat_1", "title": "Zakat"},
            "id": "mat_1",
        }
        assert gateway.pushes_sent == 1
        assert gateway.push_failures == 0

    @pytest.mark.asyncio
    async def test_send_failure_is_logged_not_raised(self, mock_hass, caplog):
        session = Mock()
        session.post = Mock(side_effect=aiohttp.ClientError("offline"))
        gateway = RemoteSyncGateway(mock_hass, ENDPOINT)

        with patch(SESSION, return_value=session):
            await gateway._async_send("deleteStudent", {"id": "stu_1"})

        assert gateway.push_failures == 1
        assert gateway.pushes_sent == 0
        assert "Failed to sync deleteStudent for stu_1" in caplog.text
