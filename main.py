# main.py
# CLI entrypoint: argument handling, running the scan, reporting

from __future__ import annotations
import argparse
import logging
import sys
import threading
import time
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

from config import ScanConfig
from models import Protocol, ScanRequest
from reporter import Reporter
from scanner import CollectingObserver, ScanCoordinator, ScanObserver
from ui import ConsoleObserver, ProgressUI

EXIT_CANCELLED = 130


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def build_parser(cfg: ScanConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="portsweep",
        description="Concurrent TCP/UDP port scanner",
    )
    parser.add_argument("host", nargs="?", default=None, help="Hostname or IP address to scan")
    parser.add_argument("-s", "--start-port", type=int, default=cfg.default_start_port,
                        help=f"First port of the range (default {cfg.default_start_port})")
    parser.add_argument("-e", "--end-port", type=int, default=cfg.default_end_port,
                        help=f"Last port of the range (default {cfg.default_end_port})")
    parser.add_argument("-t", "--threads", type=int, default=cfg.default_threads,
                        help=f"Concurrent probes, 1-{cfg.max_threads} (default {cfg.default_threads})")
    parser.add_argument("-p", "--protocol", choices=["tcp", "udp", "both"], default="tcp",
                        help="Protocol(s) to probe (default tcp)")
    parser.add_argument("--timeout", type=float, default=None,
                        help="Override both the TCP connect and UDP receive timeout (seconds)")
    parser.add_argument("-o", "--output", default=cfg.save_text_path,
                        help=f"Append open ports to this file (default {cfg.save_text_path})")
    parser.add_argument("--json", default=None, help="Also save a JSON report to this path")
    parser.add_argument("--no-save", action="store_true", help="Don't write any result files")
    parser.add_argument("--ui", action="store_true", help="Live terminal dashboard")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def run_scan(coordinator: ScanCoordinator, request: ScanRequest, observer: ScanObserver) -> None:
    """
    Run the scan on a background thread so Ctrl+C can cancel it cleanly.
    Returns once the coordinator has released its workers, or straight
    away on a second Ctrl+C (the scan thread is a daemon).
    """
    worker = threading.Thread(target=coordinator.scan, args=(request, observer), name="scan", daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(0.2)
    except KeyboardInterrupt:
        coordinator.cancel()
        print("\nCancelling, waiting for in-flight probes to finish (Ctrl+C again to quit)...", file=sys.stderr)
        try:
            worker.join()
        except KeyboardInterrupt:
            print("Not waiting for in-flight probes.", file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    cfg = ScanConfig()
    parser = build_parser(cfg)
    args = parser.parse_args(argv)

    if not args.host:
        parser.print_usage()
        print("Example: portsweep www.example.com -s 1 -e 1024 -t 10")
        return 0

    if not 1 <= args.threads <= cfg.max_threads:
        parser.error(f"threads must be between 1 and {cfg.max_threads}")
    try:
        request = ScanRequest(
            host=args.host,
            start_port=args.start_port,
            end_port=args.end_port,
            protocol=Protocol.parse(args.protocol),
            max_workers=args.threads,
        )
    except ValueError as e:
        parser.error(str(e))

    setup_logging(args.verbose)

    if args.timeout is not None:
        if args.timeout <= 0:
            parser.error("timeout must be positive")
        cfg.tcp_timeout = float(args.timeout)
        cfg.udp_timeout = float(args.timeout)
    if args.no_save:
        cfg.save_text_path = None
        cfg.save_json_path = None
    else:
        cfg.save_text_path = args.output
        cfg.save_json_path = args.json

    print(
        f"Scanning {request.host} ports {request.start_port} to {request.end_port} "
        f"over {request.protocol.display_name} using {request.max_workers} threads..."
    )
    if Protocol.UDP in request.protocol.selected():
        print("Note: UDP results are unreliable; open|filtered means no reply was received.")

    ui = ProgressUI(request.host, request.total_tasks) if args.ui else None
    collector = CollectingObserver(ui or ConsoleObserver())
    coordinator = ScanCoordinator(cfg)

    started = time.monotonic()
    if ui:
        ui.start()
    try:
        run_scan(coordinator, request, collector)
    finally:
        if ui:
            ui.stop()
    elapsed = time.monotonic() - started

    if coordinator.cancelled:
        print("Scan cancelled.")
        return EXIT_CANCELLED
    if not collector.completed:
        print("Scan failed, see the log output above.", file=sys.stderr)
        return 1

    reporter = Reporter(request, version=cfg.version)
    reporter.set_results(collector.results, elapsed)
    print(reporter.to_text())

    saved = []
    try:
        if cfg.save_text_path and reporter.results:
            reporter.save_text(cfg.save_text_path)
            saved.append(cfg.save_text_path)
        if cfg.save_json_path:
            reporter.save_json(cfg.save_json_path)
            saved.append(cfg.save_json_path)
    except OSError as e:
        print(f"Failed to save results: {e}", file=sys.stderr)
    if saved:
        print("Results saved to " + " and ".join(saved))
    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
