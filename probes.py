# probes.py
# Single-port TCP connect and UDP send/receive probes

from __future__ import annotations
import socket
from typing import Optional

from models import PortResult, PortState, Protocol
from payloads import build_payload
from services import resolve_service


def probe_tcp(host: str, port: int, timeout: float = 0.5) -> Optional[PortResult]:
    """
    Full TCP connect. Returns an "open" result, or None when the connection
    is refused, times out, is unreachable or the host does not resolve.
    """
    try:
        with socket.create_connection((host, port), timeout=timeout):
            pass
    except OSError:
        return None
    return PortResult(port, Protocol.TCP, resolve_service(port, "tcp"), PortState.OPEN)


def probe_udp(host: str, port: int, timeout: float = 1.0, bufsize: int = 1024) -> Optional[PortResult]:
    """
    Send a probe datagram and wait for a reply.

    reply           -> "open"
    no reply        -> "open|filtered"
    ICMP unreachable-> None
    other I/O error -> None

    The socket is connected so the kernel hands ICMP port-unreachable back
    to us as ConnectionRefusedError. Like create_connection() for TCP, every
    resolved address is tried in turn: an address that refuses or errors
    moves on to the next one, the first reply or silence decides.
    """
    try:
        infos = socket.getaddrinfo(host, port, type=socket.SOCK_DGRAM)
    except OSError:
        return None

    payload = build_payload(port)
    for family, _, proto, _, sockaddr in infos:
        try:
            with socket.socket(family, socket.SOCK_DGRAM, proto) as sock:
                sock.settimeout(timeout)
                sock.connect(sockaddr)
                sock.send(payload)
                try:
                    sock.recv(bufsize)
                    state = PortState.OPEN
                except socket.timeout:
                    state = PortState.OPEN_FILTERED
        except OSError:
            # ConnectionRefusedError (port unreachable) lands here too
            continue
        return PortResult(port, Protocol.UDP, resolve_service(port, "udp"), state)
    return None
