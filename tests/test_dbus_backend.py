"""Tests for the D-Bus scanner client, against a fake proxy interface."""

from __future__ import annotations

import json

import pytest
from dbus_next.errors import DBusError

from deptox.backend.base import BackendError, ScanConfig
from deptox.backend.dbus import DBusScanBackend, _snake
from deptox.models.directory_entry import DependencyCategory
from deptox.models.events import EntryFound, ScanCancelled, ScanFailed

ENTRY = {"path": "/code/app/node_modules", "sizeBytes": 10, "category": "NODE_MODULES"}


class FakeBus:
    def __init__(self):
        self.disconnected = False

    def disconnect(self):
        self.disconnected = True


class FakeInterface:
    """Mimics the call_/on_/off_ members dbus-next generates on a proxy."""

    def __init__(self):
        self.handlers: dict[str, list] = {}
        self.calls: list[tuple] = []
        self.replies: dict[str, object] = {}
        self.error: Exception | None = None

    def emit(self, signal: str, *args):
        for handler in list(self.handlers.get(signal, [])):
            handler(*args)

    def __getattr__(self, name: str):
        if name.startswith("on_"):
            return lambda handler: self.handlers.setdefault(name[3:], []).append(handler)
        if name.startswith("off_"):
            return lambda handler: self.handlers.get(name[4:], []).remove(handler)
        if name.startswith("call_"):
            member = name[5:]

            async def call(*args):
                self.calls.append((member, *args))
                if self.error is not None:
                    raise self.error
                return self.replies.get(member)

            return call
        raise AttributeError(name)


@pytest.fixture
def interface():
    return FakeInterface()


@pytest.fixture
def bus():
    return FakeBus()


@pytest.fixture
def dbus_backend(bus, interface):
    return DBusScanBackend(bus, interface)


class TestSignals:
    @pytest.mark.asyncio
    async def test_signals_are_published(self, dbus_backend, interface):
        sub = dbus_backend.events.subscribe()
        interface.emit("entry_found", json.dumps(ENTRY))
        interface.emit("scan_failed", "boom")
        interface.emit("scan_cancelled")
        sub.close()

        events = [e async for e in sub]
        assert isinstance(events[0], EntryFound)
        assert events[1:] == [ScanFailed(message="boom"), ScanCancelled()]

    @pytest.mark.asyncio
    async def test_malformed_signal_is_dropped(self, dbus_backend, interface, caplog):
        sub = dbus_backend.events.subscribe()
        interface.emit("entry_found", "{broken")
        sub.close()
        assert [e async for e in sub] == []
        assert "Dropping malformed EntryFound" in caplog.text

    @pytest.mark.asyncio
    async def test_close_unsubscribes_and_disconnects(self, dbus_backend, interface, bus):
        sub = dbus_backend.events.subscribe()
        await dbus_backend.close()
        await dbus_backend.close()
        assert all(not handlers for handlers in interface.handlers.values())
        assert bus.disconnected
        assert sub.closed
        with pytest.raises(BackendError):
            await dbus_backend.cancel_scan()


class TestCommands:
    @pytest.mark.asyncio
    async def test_start_scan_sends_config_json(self, dbus_backend, interface):
        config = ScanConfig("/code", (DependencyCategory.NODE_MODULES,), ("*/tmp/*",), 1024)
        await dbus_backend.start_scan(config)
        member, payload = interface.calls[0]
        assert member == "start_scan"
        assert json.loads(payload) == {
            "rootDirectory": "/code",
            "enabledCategories": ["NODE_MODULES"],
            "excludePaths": ["*/tmp/*"],
            "minSizeBytes": 1024,
        }

    @pytest.mark.asyncio
    async def test_delete_directory(self, dbus_backend, interface):
        interface.replies["delete_directory"] = json.dumps({"path": "/a", "success": True, "sizeFreed": 7})
        outcome = await dbus_backend.delete_directory("/a", permanent=True)
        assert outcome.success and outcome.size_freed == 7
        assert interface.calls[0] == ("delete_directory", "/a", True)

    @pytest.mark.asyncio
    async def test_rescan_directory(self, dbus_backend, interface):
        interface.replies["rescan_directory"] = json.dumps({"exists": True, "entry": ENTRY})
        outcome = await dbus_backend.rescan_directory("/code/app/node_modules")
        assert outcome.exists
        assert outcome.entry.size_bytes == 10

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", ["not json", "[]", json.dumps({"success": True})])
    async def test_bad_reply_raises_backend_error(self, dbus_backend, interface, reply):
        interface.replies["delete_directory"] = reply
        with pytest.raises(BackendError):
            await dbus_backend.delete_directory("/a")

    @pytest.mark.asyncio
    async def test_dbus_error_becomes_backend_error(self, dbus_backend, interface):
        interface.error = DBusError("org.freedesktop.DBus.Error.ServiceUnknown", "no scanner")
        with pytest.raises(BackendError, match="no scanner"):
            await dbus_backend.start_scan(ScanConfig("/", (DependencyCategory.GO_MOD,)))

    @pytest.mark.asyncio
    async def test_connection_lost(self, dbus_backend, interface):
        interface.error = EOFError()
        with pytest.raises(BackendError, match="connection lost"):
            await dbus_backend.cancel_scan()

    @pytest.mark.asyncio
    async def test_update_tray_clamps_negative(self, dbus_backend, interface):
        await dbus_backend.update_tray(-1, 100)
        assert interface.calls[0] == ("set_tray_icon", 0, 100)


def test_snake():
    assert _snake("ScanCompleted") == "scan_completed"
    assert _snake("EntryFound") == "entry_found"
