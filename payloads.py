# payloads.py
# Protocol-specific UDP probe payloads

from __future__ import annotations
import struct

DNS_PORT = 53
NTP_PORT = 123
SNMP_PORT = 161


def encode_dns_name(name: str) -> bytes:
    """Length-prefixed labels terminated by a zero byte (RFC 1035 QNAME)."""
    out = b""
    for label in name.strip(".").split("."):
        raw = label.encode("ascii")
        if not 0 < len(raw) < 64:
            raise ValueError(f"Invalid DNS label in {name!r}")
        out += struct.pack("!B", len(raw)) + raw
    return out + b"\x00"


def _dns_query() -> bytes:
    # ID 0x001e, standard query with RD set, 1 question, no other records
    header = struct.pack("!HHHHHH", 0x001E, 0x0100, 1, 0, 0, 0)
    # QTYPE A, QCLASS IN
    question = encode_dns_name("example.com") + struct.pack("!HH", 0x0001, 0x0001)
    return header + question


# LI=0, VN=3, Mode=3 (client); everything else zero
_NTP_REQUEST = b"\x1b" + b"\x00" * 47

# SNMPv1 GetRequest, community "public", request-id 1, one null varbind
_SNMP_GET_REQUEST = bytes([
    0x30, 0x26,
    0x02, 0x01, 0x00,
    0x04, 0x06, 0x70, 0x75, 0x62, 0x6C, 0x69, 0x63,
    0xA0, 0x19,
    0x02, 0x01, 0x01,
    0x02, 0x01, 0x00,
    0x02, 0x01, 0x00,
    0x30, 0x0E, 0x30, 0x0C,
    0x06, 0x08, 0x2B, 0x06, 0x01, 0x02, 0x01, 0x01, 0x01, 0x00,
    0x05, 0x00,
])

_PAYLOADS = {
    DNS_PORT: _dns_query(),
    NTP_PORT: _NTP_REQUEST,
    SNMP_PORT: _SNMP_GET_REQUEST,
}


def build_payload(port: int) -> bytes:
    """
    Datagram to send when probing UDP `port`.

    Well-known services get a well-formed request since many ignore
    anything else. Other ports get an empty datagram.
    """
    return _PAYLOADS.get(port, b"")
