# services.py
# Port number -> human readable service description

from __future__ import annotations
import socket
from functools import lru_cache
from typing import Dict

UNKNOWN_SERVICE = "unknown"

COMMON_PORTS: Dict[int, str] = {
    21: "FTP (File Transfer Protocol)",
    22: "SSH (Secure Shell)",
    23: "Telnet (Remote Login)",
    25: "SMTP (Simple Mail Transfer Protocol)",
    53: "DNS (Domain Name System)",
    80: "HTTP (Hypertext Transfer Protocol)",
    110: "POP3 (Post Office Protocol v3)",
    143: "IMAP (Internet Message Access Protocol)",
    443: "HTTPS (HTTP over TLS)",
    3306: "MySQL Database",
    3389: "RDP (Remote Desktop Protocol)",
    8080: "HTTP-Alt (Alternate HTTP)",
}


@lru_cache(maxsize=1024)
def _system_service_name(port: int, protocol: str) -> str:
    # Best effort: /etc/services or the platform equivalent
    try:
        return socket.getservbyport(port, protocol)
    except (OSError, OverflowError):
        return ""


def resolve_service(port: int, protocol: str = "tcp") -> str:
    """
    Describe what usually listens on `port`.

    Lookup order: built-in table, system services database, "unknown".
    Always returns a string.
    """
    if port in COMMON_PORTS:
        return COMMON_PORTS[port]
    name = _system_service_name(port, protocol.lower())
    return name or UNKNOWN_SERVICE
