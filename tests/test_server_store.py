"""Tests for the confirmed server address store."""

import json
from unittest.mock import patch

import pytest

from nfpair.errors import StorageError
from nfpair.server_store import JsonAddressStore, StoredServer


class TestStoredServer:
    """Tests for StoredServer serialization."""

    def test_round_trip_dict(self):
        server = StoredServer(address="http://h:1", saved_at="2026-01-01T00:00:00Z")
        assert StoredServer.from_dict(server.to_dict()) == server

    def test_rejects_non_string_address(self):
        with pytest.raises(TypeError):
            StoredServer.from_dict({"server_address": 5})


class TestJsonAddressStore:
    """Tests for JsonAddressStore."""

    @pytest.mark.asyncio
    async def test_empty_when_no_file(self, tmp_path):
        store = JsonAddressStore(tmp_path / "server.json")
        await store.load()

        assert store.get_server_address() is None

    @pytest.mark.asyncio
    async def test_save_and_reload(self, tmp_path):
        path = tmp_path / "nested" / "server.json"
        store = JsonAddressStore(path)

        await store.save_server_address("http://192.168.1.5:5000")

        data = json.loads(path.read_text())
        assert data["server_address"] == "http://192.168.1.5:5000"
        assert data["saved_at"].endswith("Z")

        reloaded = JsonAddressStore(path)
        await reloaded.load()
        assert reloaded.get_server_address() == "http://192.168.1.5:5000"

    @pytest.mark.asyncio
    async def test_normalizes_before_saving(self, tmp_path):
        store = JsonAddressStore(tmp_path / "server.json")

        await store.save_server_address("notify.local")

        assert store.get_server_address() == "http://notify.local"

    @pytest.mark.asyncio
    async def test_overwrites_previous(self, tmp_path):
        store = JsonAddressStore(tmp_path / "server.json")
        await store.save_server_address("http://a")
        await store.save_server_address("http://b")

        reloaded = JsonAddressStore(tmp_path / "server.json")
        await reloaded.load()
        assert reloaded.get_server_address() == "http://b"

    @pytest.mark.asyncio
    async def test_clear(self, tmp_path):
        path = tmp_path / "server.json"
        store = JsonAddressStore(path)
        await store.save_server_address("http://a")

        assert await store.clear() is True
        assert store.get_server_address() is None
        assert not path.exists()
        assert await store.clear() is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["{broken", "[]", '{"saved_at": "x"}'])
    async def test_malformed_file_ignored(self, tmp_path, content):
        path = tmp_path / "server.json"
        path.write_text(content)
        store = JsonAddressStore(path)

        await store.load()

        assert store.get_server_address() is None

    @pytest.mark.asyncio
    async def test_non_utf8_file_ignored(self, tmp_path):
        path = tmp_path / "server.json"
        path.write_bytes(b'{"server_address": "\xff"}')
        store = JsonAddressStore(path)

        await store.load()

        assert store.get() is None

    @pytest.mark.asyncio
    async def test_unreadable_file_ignored(self, tmp_path):
        """A directory where the file should be is logged, not raised."""
        path = tmp_path / "server.json"
        path.mkdir()
        store = JsonAddressStore(path)

        await store.load()

        assert store.get() is None

    @pytest.mark.asyncio
    async def test_write_failure_raises(self, tmp_path):
        store = JsonAddressStore(tmp_path / "server.json")

        with patch("builtins.open", side_effect=PermissionError("denied")):
            with pytest.raises(StorageError):
                await store.save_server_address("http://a")
