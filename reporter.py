# reporter.py
# Summarises scan results and saves them as text or JSON

from __future__ import annotations
import json
import os
from datetime import datetime, timezone
from typing import List, Optional

from models import PortResult, ScanRequest
from services import UNKNOWN_SERVICE


def _ensure_parent(path: str):
    parent = os.path.dirname(os.path.abspath(path))
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)


def format_result_line(result: PortResult) -> str:
    return f"Port {result.port} open - {result.service}"


class Reporter:
    def __init__(self, request: ScanRequest, version: str = ""):
        self.request = request
        self.version = version
        self.results: List[PortResult] = []
        self.started_at = datetime.now(timezone.utc)
        self.elapsed: Optional[float] = None

    def set_results(self, results: List[PortResult], elapsed: Optional[float] = None):
        self.results = list(results)
        self.elapsed = elapsed

    def to_text(self) -> str:
        req = self.request
        lines: List[str] = []
        lines.append("== Portsweep Report ==")
        lines.append(f"Target: {req.host}  ports {req.start_port}-{req.end_port} ({req.protocol.display_name})")
        if self.elapsed is not None:
            lines.append(f"Elapsed: {self.elapsed:.2f}s")
        lines.append("")

        if not self.results:
            lines.append("No open ports found.")
            return "\n".join(lines)

        lines.append(f"Open ports ({len(self.results)}):")
        lines.append("-" * 50)
        for r in self.results:
            if r.service == UNKNOWN_SERVICE:
                service = "unknown (may be a custom or uncommon service, worth a closer look)"
            else:
                service = r.service
            lines.append(f"Port {r.port}/{r.protocol.display_name} [{r.state}]: {service}")
        lines.append("-" * 50)
        return "\n".join(lines)

    def to_json(self) -> str:
        req = self.request
        doc = {
            "meta": {
                "generated_utc": self.started_at.isoformat(),
                "tool": f"Portsweep {self.version}".strip(),
                "elapsed_seconds": self.elapsed,
            },
            "target": {
                "host": req.host,
                "start_port": req.start_port,
                "end_port": req.end_port,
                "protocol": req.protocol.display_name,
            },
            "results": [
                {
                    "port": r.port,
                    "protocol": r.protocol.display_name,
                    "state": str(r.state),
                    "service": r.service,
                }
                for r in self.results
            ],
        }
        return json.dumps(doc, indent=2)

    def save_text(self, path: str):
        # Appends, so repeated scans accumulate in one file
        _ensure_parent(path)
        with open(path, "a", encoding="utf-8") as f:
            for r in self.results:
                f.write(format_result_line(r) + "\n")

    def save_json(self, path: str):
        _ensure_parent(path)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.to_json())
