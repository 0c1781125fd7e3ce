"""Unit tests for the envelope-returning boundary and the current-handle wrapper."""

from collections.abc import Generator

import pytest

import boundary.api
import boundary.compat
from boundary.api import RcpBoundary
from boundary.compat import CurrentHandleBoundary
from boundary.envelope import ResultEnvelope
from client.engine import RcpClient
from common.errors import ErrorKind, HostUnreachableError
from common.protocol import Transport
from server.host import AppHost
from test.conftest import MockHostLinks, make_config


def _check_exactly_one(envelope: ResultEnvelope) -> None:
    if envelope.success:
        assert envelope.data is not None
        assert envelope.error_message is None
    else:
        assert envelope.data is None
        assert envelope.error_message


def _take(envelope: ResultEnvelope) -> tuple[bool, str | None, ErrorKind | None]:
    """Copy an envelope's outcome out and release it."""
    _check_exactly_one(envelope)
    outcome = (envelope.success, envelope.data, envelope.error_kind)
    envelope.release()
    return outcome


@pytest.fixture
def rcp(host_links: MockHostLinks) -> Generator[RcpBoundary, None, None]:
    api = RcpBoundary(RcpClient(config=make_config(), transport_factory=host_links))
    yield api
    api.close()


def _login(rcp: RcpBoundary) -> tuple[str, str]:
    ok, connection_id, _ = _take(rcp.connect_to_server("host", 9000, 2000))
    assert ok and connection_id
    envelope = rcp.authenticate(connection_id, "alice", "correct")
    session_id = envelope.json()["sessionId"]
    envelope.release()
    return connection_id, session_id


@pytest.mark.unit
class TestBoundaryScenarios:
    """End-to-end flows through RcpBoundary."""

    def test_unreachable_host(self) -> None:
        def factory(host: str, port: int, timeout_s: float) -> Transport:
            raise HostUnreachableError(f"Cannot resolve {host}")

        api = RcpBoundary(RcpClient(make_config(), factory))
        envelope = api.connect_to_server("host", 9000, 2000)
        assert envelope.success is False
        assert envelope.error_kind == ErrorKind.UNREACHABLE
        assert envelope.error_message == "Unreachable: Cannot resolve host"
        envelope.release()

    def test_wrong_password(self, rcp: RcpBoundary) -> None:
        _, connection_id, _ = _take(rcp.connect_to_server("host", 9000, 2000))
        ok, data, kind = _take(rcp.authenticate(connection_id, "alice", "wrong"))
        assert not ok
        assert kind == ErrorKind.AUTHENTICATION_FAILED
        assert len(rcp.client.sessions) == 0

    def test_authenticate_payload(self, rcp: RcpBoundary) -> None:
        _, connection_id, _ = _take(rcp.connect_to_server("host", 9000, 2000))
        envelope = rcp.authenticate(connection_id, "alice", "correct")
        payload = envelope.json()
        envelope.release()
        assert payload["sessionId"].startswith("sess-")
        assert payload["user"] == {
            "username": "alice",
            "displayName": "Alice",
            "email": "alice@example.com",
        }

    def test_list_apps(self, rcp: RcpBoundary) -> None:
        _, session_id = _login(rcp)
        envelope = rcp.get_available_apps(session_id)
        apps = envelope.json()
        envelope.release()
        ids = [app["id"] for app in apps]
        assert ids == ["app1", "app2"]
        assert all(ids) and len(set(ids)) == len(ids)
        assert set(apps[0]) == {"id", "name", "description", "iconUrl"}

    def test_list_after_logout(self, rcp: RcpBoundary) -> None:
        _, session_id = _login(rcp)
        assert _take(rcp.logout(session_id)) == (True, "", None)
        ok, _, kind = _take(rcp.get_available_apps(session_id))
        assert not ok
        assert kind == ErrorKind.SESSION_EXPIRED

    def test_logout_twice(self, rcp: RcpBoundary) -> None:
        _, session_id = _login(rcp)
        assert _take(rcp.logout(session_id)) == (True, "", None)
        assert _take(rcp.logout(session_id)) == (True, "", None)

    def test_launch(self, rcp: RcpBoundary, app_host: AppHost) -> None:
        _, session_id = _login(rcp)
        assert _take(rcp.launch_app(session_id, "app1")) == (True, "", None)
        assert _take(rcp.launch_app(session_id, "app2"))[2] == ErrorKind.LAUNCH_REJECTED
        assert _take(rcp.launch_app(session_id, "nope"))[2] == ErrorKind.NOT_FOUND
        assert app_host.launched == [("alice", "app1")]

    def test_disconnect_expires_session(self, rcp: RcpBoundary) -> None:
        connection_id, session_id = _login(rcp)
        assert _take(rcp.disconnect(connection_id)) == (True, "", None)
        assert _take(rcp.disconnect(connection_id)) == (True, "", None)
        assert _take(rcp.get_available_apps(session_id))[2] == ErrorKind.SESSION_EXPIRED
        assert _take(rcp.authenticate(connection_id, "alice", "correct"))[2] == ErrorKind.INVALID_STATE

    def test_link_lost(self, rcp: RcpBoundary, host_links: MockHostLinks) -> None:
        _, session_id = _login(rcp)
        host_links.last_pair.cut()
        assert _take(rcp.launch_app(session_id, "app1"))[2] == ErrorKind.SESSION_EXPIRED

    @pytest.mark.parametrize(
        "host,port,timeout_ms",
        [("", 9000, 1000), ("host", 0, 1000), ("host", 70000, 1000), ("host", 9000, -5)],
    )
    def test_invalid_connect_arguments(
        self, rcp: RcpBoundary, host_links: MockHostLinks, host: str, port: int, timeout_ms: int
    ) -> None:
        assert _take(rcp.connect_to_server(host, port, timeout_ms))[2] == ErrorKind.VALIDATION_ERROR
        assert host_links.calls == []

    def test_timeout_ms_conversion(self, rcp: RcpBoundary, host_links: MockHostLinks) -> None:
        _take(rcp.connect_to_server("host", 9000, 1500))
        _take(rcp.connect_to_server("host", 9000, 0))
        assert host_links.calls[0][2] == 1.5
        assert host_links.calls[1][2] == make_config().connect_timeout_s

    def test_unknown_handles(self, rcp: RcpBoundary) -> None:
        assert _take(rcp.authenticate("conn-3-1", "alice", "correct"))[2] == ErrorKind.INVALID_STATE
        assert _take(rcp.get_available_apps("sess-3-1"))[2] == ErrorKind.INVALID_STATE
        assert _take(rcp.launch_app("bogus", "app1"))[2] == ErrorKind.INVALID_STATE
        assert _take(rcp.logout("bogus")) == (True, "", None)
        assert _take(rcp.disconnect("bogus")) == (True, "", None)

    def test_free_session(self, rcp: RcpBoundary) -> None:
        _, session_id = _login(rcp)
        rcp.free_session(session_id)
        assert _take(rcp.get_available_apps(session_id))[2] == ErrorKind.INVALID_STATE

    def test_unexpected_exception_becomes_transport_error(
        self, rcp: RcpBoundary, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def explode(session_handle: str) -> None:
            raise RuntimeError("boom")

        monkeypatch.setattr(rcp.client, "list_apps", explode)
        envelope = rcp.get_available_apps("sess-0-1")
        assert envelope.error_kind == ErrorKind.TRANSPORT_ERROR
        assert "Internal error" in (envelope.error_message or "")
        envelope.release()

    def test_surrogate_host_name(self) -> None:
        def factory(host: str, port: int, timeout_s: float) -> Transport:
            raise HostUnreachableError(f"Cannot resolve {host}")

        api = RcpBoundary(RcpClient(make_config(), factory))
        envelope = api.connect_to_server("\udc80", 9000, 500)
        assert envelope.success is False
        assert envelope.error_kind == ErrorKind.UNREACHABLE
        assert envelope.error_message == "Unreachable: Cannot resolve \\udc80"
        envelope.release()

    def test_surrogate_host_name_default_transport(self) -> None:
        api = RcpBoundary(RcpClient(make_config()))
        try:
            ok, data, kind = _take(api.connect_to_server("\udc80", 9000, 500))
            assert not ok
            assert data is None
            assert kind is not None
        finally:
            api.close()

    def test_envelope_construction_failure_is_contained(
        self, rcp: RcpBoundary, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def broken_ok(data: str = "") -> ResultEnvelope:
            raise UnicodeEncodeError("utf-8", data, 0, 1, "surrogates not allowed")

        monkeypatch.setattr(ResultEnvelope, "ok", broken_ok)
        envelope = rcp.connect_to_server("host", 9000, 1000)
        assert envelope.success is False
        assert envelope.error_kind == ErrorKind.TRANSPORT_ERROR
        assert "Internal error in connect" in (envelope.error_message or "")
        envelope.release()


@pytest.mark.unit
class TestModuleFunctions:
    """Tests for the process-wide rcp_* functions."""

    def test_flow(self, rcp: RcpBoundary, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(boundary.api, "_default_boundary", rcp)
        assert boundary.api.default_boundary() is rcp

        connected = boundary.api.rcp_connect_to_server("host", 9000, 1000)
        connection_id = connected.data
        boundary.api.rcp_free_result(connected)

        authenticated = boundary.api.rcp_authenticate(connection_id, "alice", "correct")
        session_id = authenticated.json()["sessionId"]
        boundary.api.rcp_free_result(authenticated)

        apps = boundary.api.rcp_get_available_apps(session_id)
        assert [app["id"] for app in apps.json()] == ["app1", "app2"]
        boundary.api.rcp_free_result(apps)

        for envelope in (
            boundary.api.rcp_launch_app(session_id, "app1"),
            boundary.api.rcp_logout(session_id),
            boundary.api.rcp_disconnect(connection_id),
        ):
            assert envelope.success
            boundary.api.rcp_free_result(envelope)
        boundary.api.rcp_free_session(session_id)


@pytest.mark.unit
class TestCurrentHandleBoundary:
    """Tests for the implicit current-connection call shape."""

    def test_flow(self, rcp: RcpBoundary, app_host: AppHost) -> None:
        compat = CurrentHandleBoundary(rcp)
        assert _take(compat.rcp_init("host", 9000))[0]
        assert compat.connection_id is not None

        assert _take(compat.rcp_authenticate("alice", "correct"))[0]
        assert compat.session_id is not None

        ok, data, _ = _take(compat.rcp_get_available_apps())
        assert ok and "app1" in (data or "")

        assert _take(compat.rcp_launch_app("app1")) == (True, "", None)
        assert app_host.launched == [("alice", "app1")]

        assert _take(compat.rcp_logout()) == (True, "", None)
        assert compat.session_id is None
        assert _take(compat.rcp_get_available_apps())[2] == ErrorKind.INVALID_STATE

        assert _take(compat.rcp_shutdown()) == (True, "", None)
        assert compat.connection_id is None

    def test_calls_before_init(self, rcp: RcpBoundary) -> None:
        compat = CurrentHandleBoundary(rcp)
        assert _take(compat.rcp_authenticate("alice", "correct"))[2] == ErrorKind.INVALID_STATE
        assert _take(compat.rcp_launch_app("app1"))[2] == ErrorKind.INVALID_STATE
        assert _take(compat.rcp_logout()) == (True, "", None)

    def test_reinit_replaces_connection(self, rcp: RcpBoundary) -> None:
        compat = CurrentHandleBoundary(rcp)
        _take(compat.rcp_init("host", 9000))
        first = compat.connection_id
        _take(compat.rcp_authenticate("alice", "correct"))

        _take(compat.rcp_init("host", 9000))
        assert compat.connection_id != first
        assert compat.session_id is None
        assert len(rcp.client.connections) == 1

    def test_session_records_freed(self, rcp: RcpBoundary) -> None:
        compat = CurrentHandleBoundary(rcp)
        for _ in range(3):
            assert _take(compat.rcp_init("host", 9000))[0]
            for _ in range(3):
                assert _take(compat.rcp_authenticate("alice", "correct"))[0]
                assert len(rcp.client.sessions) == 1
            assert _take(compat.rcp_logout()) == (True, "", None)
            assert len(rcp.client.sessions) == 0
            assert _take(compat.rcp_authenticate("alice", "correct"))[0]

        assert _take(compat.rcp_shutdown()) == (True, "", None)
        assert len(rcp.client.sessions) == 0
        assert len(rcp.client.connections) == 0

    def test_wrong_password_keeps_no_session(self, rcp: RcpBoundary) -> None:
        compat = CurrentHandleBoundary(rcp)
        _take(compat.rcp_init("host", 9000))
        assert _take(compat.rcp_authenticate("alice", "wrong"))[2] == ErrorKind.AUTHENTICATION_FAILED
        assert compat.session_id is None

    def test_module_functions(self, rcp: RcpBoundary, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(boundary.compat, "_current", CurrentHandleBoundary(rcp))
        assert _take(boundary.compat.rcp_init("host", 9000))[0]
        assert _take(boundary.compat.rcp_authenticate("alice", "correct"))[0]
        assert _take(boundary.compat.rcp_get_available_apps())[0]
        assert _take(boundary.compat.rcp_launch_app("app1"))[0]
        assert _take(boundary.compat.rcp_logout())[0]
