import socket
import sys
import threading

import pytest

import probes
from models import PortState, Protocol
from probes import probe_tcp, probe_udp

LOCALHOST = "127.0.0.1"


def _free_port(kind=socket.SOCK_STREAM):
    # Bind then close: nothing listens there afterwards
    with socket.socket(socket.AF_INET, kind) as s:
        s.bind((LOCALHOST, 0))
        return s.getsockname()[1]


@pytest.fixture
def tcp_listener():
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind((LOCALHOST, 0))
    srv.listen(5)
    yield srv.getsockname()[1]
    srv.close()


@pytest.fixture
def silent_udp():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind((LOCALHOST, 0))
    yield sock.getsockname()[1]
    sock.close()


@pytest.fixture
def echo_udp():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind((LOCALHOST, 0))
    sock.settimeout(5)
    received = []

    def serve():
        try:
            data, addr = sock.recvfrom(2048)
        except OSError:
            return
        received.append(data)
        sock.sendto(b"pong", addr)

    t = threading.Thread(target=serve, daemon=True)
    t.start()
    yield sock.getsockname()[1], received
    t.join(5)
    sock.close()


def test_tcp_open_port(tcp_listener):
    result = probe_tcp(LOCALHOST, tcp_listener, timeout=1.0)
    assert result is not None
    assert result.port == tcp_listener
    assert result.protocol is Protocol.TCP
    assert result.state is PortState.OPEN
    assert isinstance(result.service, str) and result.service


def test_tcp_closed_port():
    assert probe_tcp(LOCALHOST, _free_port(), timeout=1.0) is None


def test_tcp_resolution_failure_is_closed(monkeypatch):
    def boom(*args, **kwargs):
        raise socket.gaierror(-2, "Name or service not known")

    monkeypatch.setattr(socket, "create_connection", boom)
    assert probe_tcp("no-such-host.invalid", 80) is None


def test_tcp_timeout_is_closed(monkeypatch):
    def slow(*args, **kwargs):
        raise socket.timeout("timed out")

    monkeypatch.setattr(socket, "create_connection", slow)
    assert probe_tcp("10.255.255.1", 80) is None


def test_tcp_service_only_on_open(monkeypatch, tcp_listener):
    calls = []
    monkeypatch.setattr(probes, "resolve_service", lambda port, proto: calls.append(port) or "svc")
    probe_tcp(LOCALHOST, _free_port(), timeout=1.0)
    assert calls == []
    assert probe_tcp(LOCALHOST, tcp_listener, timeout=1.0).service == "svc"
    assert calls == [tcp_listener]


def test_udp_silent_port_is_open_filtered(silent_udp):
    result = probe_udp(LOCALHOST, silent_udp, timeout=0.2)
    assert result is not None
    assert result.protocol is Protocol.UDP
    assert result.state is PortState.OPEN_FILTERED


def test_udp_reply_means_open(echo_udp):
    port, received = echo_udp
    result = probe_udp(LOCALHOST, port, timeout=2.0)
    assert result is not None
    assert result.state is PortState.OPEN
    # ephemeral port: the empty datagram still goes out
    assert received == [b""]


@pytest.mark.skipif(not sys.platform.startswith("linux"), reason="relies on Linux ICMP error reporting")
def test_udp_unreachable_port_is_closed():
    assert probe_udp(LOCALHOST, _free_port(socket.SOCK_DGRAM), timeout=1.0) is None


def test_udp_resolution_failure_is_closed(monkeypatch):
    def boom(*args, **kwargs):
        raise socket.gaierror(-2, "Name or service not known")

    monkeypatch.setattr(socket, "getaddrinfo", boom)
    assert probe_udp("no-such-host.invalid", 53) is None


def test_udp_sends_protocol_payload(monkeypatch):
    sent = []

    class FakeSocket:
        def __init__(self, *args):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def settimeout(self, t):
            pass

        def connect(self, addr):
            pass

        def send(self, data):
            sent.append(data)

        def recv(self, n):
            return b"\x1c" + b"\x00" * 47

    monkeypatch.setattr(socket, "getaddrinfo", lambda *a, **k: [(socket.AF_INET, socket.SOCK_DGRAM, 17, "", ("192.0.2.1", 123))])
    monkeypatch.setattr(socket, "socket", FakeSocket)
    result = probe_udp("192.0.2.1", 123)
    assert result.state is PortState.OPEN
    assert sent == [probes.build_payload(123)]


@pytest.mark.skipif(not sys.platform.startswith("linux"), reason="relies on Linux ICMP error reporting")
def test_udp_tries_next_address_after_refusal(monkeypatch, silent_udp):
    closed = _free_port(socket.SOCK_DGRAM)

    def two_addresses(host, port, *args, **kwargs):
        # like "localhost": the first address refuses, the service lives on the second
        return [
            (socket.AF_INET, socket.SOCK_DGRAM, 17, "", (LOCALHOST, closed)),
            (socket.AF_INET, socket.SOCK_DGRAM, 17, "", (LOCALHOST, silent_udp)),
        ]

    monkeypatch.setattr(socket, "getaddrinfo", two_addresses)
    result = probe_udp("localhost", silent_udp, timeout=0.2)
    assert result is not None
    assert result.state is PortState.OPEN_FILTERED


def test_udp_no_usable_address_is_closed(monkeypatch):
    monkeypatch.setattr(socket, "getaddrinfo", lambda *a, **k: [])
    assert probe_udp("localhost", 53) is None
