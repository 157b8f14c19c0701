# models.py
# Scan request, work units and results

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, List

MIN_PORT = 1
MAX_PORT = 65535


class Protocol(Enum):
    TCP = "TCP"
    UDP = "UDP"
    BOTH = "TCP+UDP"

    @property
    def display_name(self) -> str:
        return self.value

    def selected(self) -> List["Protocol"]:
        """Concrete protocols this selector expands to, TCP first."""
        if self is Protocol.BOTH:
            return [Protocol.TCP, Protocol.UDP]
        return [self]

    @classmethod
    def parse(cls, text: str) -> "Protocol":
        key = text.strip().upper()
        if key == "TCP+UDP":
            return cls.BOTH
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"Unknown protocol: {text!r} (expected tcp, udp or both)") from None

    def __str__(self) -> str:
        return self.value


class PortState(str, Enum):
    OPEN = "open"
    # UDP only: no reply, so either open-and-silent or dropped by a firewall
    OPEN_FILTERED = "open|filtered"

    def __str__(self) -> str:
        return self.value


class ScanStatus(Enum):
    IDLE = auto()
    RUNNING = auto()
    COMPLETED = auto()
    CANCELLED = auto()


@dataclass(frozen=True)
class ProbeTask:
    port: int
    protocol: Protocol


@dataclass(frozen=True)
class PortResult:
    port: int
    protocol: Protocol
    service: str
    state: PortState

    def __str__(self) -> str:
        return f"Port {self.port} ({self.protocol.display_name}): {self.service} - {self.state}"


@dataclass(frozen=True)
class ScanRequest:
    """
    One scan of [start_port, end_port] on a single host.

    Invalid values raise ValueError immediately so the coordinator never
    runs on a nonsensical range.
    """
    host: str
    start_port: int
    end_port: int
    protocol: Protocol = Protocol.TCP
    max_workers: int = 10

    def __post_init__(self):
        if not self.host or not self.host.strip():
            raise ValueError("host must not be empty")
        for name in ("start_port", "end_port"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            if not MIN_PORT <= value <= MAX_PORT:
                raise ValueError(f"{name} must be between {MIN_PORT} and {MAX_PORT}, got {value}")
        if self.start_port > self.end_port:
            raise ValueError(f"start_port ({self.start_port}) is greater than end_port ({self.end_port})")
        if not isinstance(self.protocol, Protocol):
            raise ValueError(f"protocol must be a Protocol, got {self.protocol!r}")
        if isinstance(self.max_workers, bool) or not isinstance(self.max_workers, int) or self.max_workers < 1:
            raise ValueError(f"max_workers must be a positive integer, got {self.max_workers!r}")

    @property
    def port_count(self) -> int:
        return self.end_port - self.start_port + 1

    @property
    def total_tasks(self) -> int:
        return self.port_count * len(self.protocol.selected())

    def tasks(self) -> Iterator[ProbeTask]:
        # Ascending ports within a protocol; the whole TCP block goes first
        for proto in self.protocol.selected():
            for port in range(self.start_port, self.end_port + 1):
                yield ProbeTask(port, proto)
