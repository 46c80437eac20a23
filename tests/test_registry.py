"""Tests for ReceiverRegistry and ReceiverSession."""

import threading

import pytest

from osctrack_sdk_python.errors import TransportError
from osctrack_sdk_python.sender.registry import MANUAL_KEY, ReceiverRegistry
from osctrack_sdk_python.sender.session import ReceiverSession


class TestReceiverSession:
    def test_equality_is_endpoint(self, session_factory):
        a = session_factory("a", "10.0.0.2", 9000)
        b = session_factory("b", "10.0.0.2", 9000)
        c = session_factory("a", "10.0.0.2", 9001)
        assert a == b
        assert a != c
        assert len({a, b, c}) == 2

    def test_send_after_close_raises(self, session_factory):
        session = session_factory("a", "10.0.0.2", 9000)
        session.close()
        with pytest.raises(TransportError):
            session.send("/tracking/trackers/1/position", 0, 0, 0)

    def test_socket_error_is_transport_error(self, session_factory, clients):
        session = session_factory("a", "10.0.0.2", 9000)
        clients.created[0].fail = True
        with pytest.raises(TransportError):
            session.send("/tracking/trackers/1/position", 0, 0, 0)

    def test_send_converts_to_floats(self, session_factory, clients):
        session = session_factory("a", "10.0.0.2", 9000)
        session.send("/tracking/trackers/1/position", 1, 2, 3)
        assert clients.messages == [("/tracking/trackers/1/position", [1.0, 2.0, 3.0])]
        assert all(isinstance(v, float) for v in clients.messages[0][1])


class TestReceiverRegistry:
    def test_upsert_new(self, session_factory):
        registry = ReceiverRegistry()
        assert registry.is_empty()
        assert registry.upsert("vrc", session_factory("vrc", "10.0.0.2", 9000)) is True
        assert not registry.is_empty()
        assert "vrc" in registry
        assert len(registry) == 1

    def test_upsert_same_endpoint_is_noop(self, session_factory):
        registry = ReceiverRegistry()
        first = session_factory("vrc", "10.0.0.2", 9000)
        again = session_factory("vrc", "10.0.0.2", 9000)
        registry.upsert("vrc", first)
        assert registry.upsert("vrc", again) is False
        assert registry.get("vrc") is first
        assert again.closed
        assert not first.closed
        assert len(registry.snapshot()) == 1

    def test_upsert_new_endpoint_replaces(self, session_factory):
        registry = ReceiverRegistry()
        old = session_factory("vrc", "10.0.0.2", 9000)
        new = session_factory("vrc", "10.0.0.2", 9002)
        registry.upsert("vrc", old)
        assert registry.upsert("vrc", new) is True
        assert registry.get("vrc") is new
        assert old.closed

    def test_remove(self, session_factory):
        registry = ReceiverRegistry()
        session = session_factory("vrc", "10.0.0.2", 9000)
        registry.upsert("vrc", session)
        assert registry.remove("vrc") is session
        assert session.closed
        assert registry.remove("vrc") is None
        assert registry.is_empty()

    def test_snapshot_manual_first_and_deduplicated(self, session_factory):
        registry = ReceiverRegistry()
        registry.upsert("a", session_factory("a", "10.0.0.2", 9000))
        registry.upsert("b", session_factory("b", "10.0.0.3", 9000))
        registry.upsert(MANUAL_KEY, session_factory(MANUAL_KEY, "10.0.0.3", 9000))
        snapshot = registry.snapshot()
        assert [s.key for s in snapshot] == [MANUAL_KEY, "a"]

    def test_snapshot_is_a_copy(self, session_factory):
        registry = ReceiverRegistry()
        registry.upsert("a", session_factory("a", "10.0.0.2", 9000))
        snapshot = registry.snapshot()
        registry.remove("a")
        assert len(snapshot) == 1
        assert registry.snapshot() == []

    def test_clear_keep_manual(self, session_factory):
        registry = ReceiverRegistry()
        registry.upsert("a", session_factory("a", "10.0.0.2", 9000))
        registry.upsert(MANUAL_KEY, session_factory(MANUAL_KEY, "127.0.0.1", 9000))
        registry.clear(keep_manual=True)
        assert registry.keys() == [MANUAL_KEY]
        registry.clear()
        assert registry.is_empty()

    def test_concurrent_writer_and_reader(self, session_factory):
        registry = ReceiverRegistry()
        errors = []
        stop = threading.Event()

        def writer():
            try:
                for i in range(500):
                    key = f"svc-{i % 10}"
                    registry.upsert(key, session_factory(key, "10.0.0.2", 9000 + i))
                    if i % 3 == 0:
                        registry.remove(key)
            except Exception as e:
                errors.append(e)
            finally:
                stop.set()

        thread = threading.Thread(target=writer)
        thread.start()
        while not stop.is_set():
            for session in registry.snapshot():
                assert session.port >= 9000
        thread.join()
        assert errors == []

    def test_guard_refuses_upsert(self, session_factory):
        registry = ReceiverRegistry()
        session = session_factory("vrc", "10.0.0.2", 9000)
        assert registry.upsert("vrc", session, guard=lambda: False) is False
        assert registry.is_empty()
        assert session.closed

    def test_guard_checked_under_lock(self, session_factory):
        registry = ReceiverRegistry()
        seen = []
        registry.upsert("vrc", session_factory("vrc", "10.0.0.2", 9000),
                        guard=lambda: seen.append(registry.lock.locked()) or True)
        assert seen == [True]
        assert "vrc" in registry


class TestLease:
    def test_replaced_session_stays_open_until_lease_ends(self, session_factory):
        registry = ReceiverRegistry()
        old = session_factory("vrc", "10.0.0.2", 9000)
        registry.upsert("vrc", old)
        with registry.lease() as sessions:
            registry.upsert("vrc", session_factory("vrc", "10.0.0.2", 9002))
            assert not old.closed
            sessions[0].send("/tracking/trackers/1/rotation", 0, 0, 0)
        assert old.closed
        assert registry.get("vrc").port == 9002

    def test_removed_and_cleared_sessions_wait_for_last_lease(self, session_factory):
        registry = ReceiverRegistry()
        a = session_factory("a", "10.0.0.2", 9000)
        b = session_factory("b", "10.0.0.3", 9000)
        registry.upsert("a", a)
        registry.upsert("b", b)
        with registry.lease():
            with registry.lease():
                registry.remove("a")
                registry.clear()
            assert not a.closed
            assert not b.closed
        assert a.closed
        assert b.closed

    def test_no_lease_closes_immediately(self, session_factory):
        registry = ReceiverRegistry()
        with registry.lease():
            pass
        session = session_factory("a", "10.0.0.2", 9000)
        registry.upsert("a", session)
        registry.remove("a")
        assert session.closed


class FakeSocket:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


def test_close_releases_socket():
    class SocketClient:
        def __init__(self, address, port):
            self._sock = FakeSocket()

    session = ReceiverSession("vrc", "10.0.0.2", 9000, client_factory=SocketClient)
    sock = session._client._sock
    session.close()
    assert sock.closed
    assert session.closed
    session.close()
