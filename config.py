# config.py
# Central configuration for Portsweep

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional


@dataclass
class ScanConfig:
    # Default range and concurrency (used if user doesn't pass -s/-e/-t)
    default_start_port: int = 1
    default_end_port: int = 1024
    default_threads: int = 10
    max_threads: int = 1000

    # Timeouts (seconds)
    tcp_timeout: float = 0.5
    udp_timeout: float = 1.0

    # Largest UDP reply we bother reading
    udp_bufsize: int = 1024

    # How long the coordinator waits for in-flight probes on shutdown,
    # and how often the collection loop re-checks the cancel flag
    shutdown_grace_seconds: float = 60.0
    poll_interval: float = 0.1

    # Tasks kept queued or running per worker; the rest aren't submitted yet
    queue_depth_factor: int = 2

    # Report outputs; JSON is saved only if user passes --json
    save_text_path: Optional[str] = "port_scan_results.txt"
    save_json_path: Optional[str] = None

    version: str = "1.0.0"
