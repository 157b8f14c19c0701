# scanner.py
# Concurrent TCP/UDP port scanning with live progress callbacks

from __future__ import annotations
import concurrent.futures
import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Set

import probes
from config import ScanConfig
from models import PortResult, ProbeTask, Protocol, ScanRequest, ScanStatus

log = logging.getLogger(__name__)

_PROTOCOL_ORDER = {Protocol.TCP: 0, Protocol.UDP: 1}


class ScanObserver:
    """
    Receives events from ScanCoordinator.scan().

    Callbacks for a scan are made one at a time from the thread that called
    scan(), never from the probe workers. A GUI that needs events on its own
    UI thread has to hand them over itself (queue, after(), signals...).
    Override only the callbacks you care about.
    """

    def on_progress(self, port: int, percentage: float) -> None:
        """One task finished. percentage is in [0, 100] and never decreases."""

    def on_result(self, result: PortResult) -> None:
        """An open or open|filtered port was found."""

    def on_complete(self, results: List[PortResult]) -> None:
        """Natural end of the scan, results sorted by port. Not called after cancel()."""

    def on_error(self, message: str) -> None:
        """A single probe blew up unexpectedly. The scan carries on."""


def result_sort_key(result: PortResult):
    return (result.port, _PROTOCOL_ORDER[result.protocol])


class ScanCoordinator:
    """
    Fans ProbeTasks out to a fixed-size thread pool and fans the outcomes
    back in on the calling thread.

    cancel() is safe from any thread and idempotent. It stops further
    submissions and the collection loop, but probes already on the wire
    run to their own timeout and their outcome is discarded. The flag is
    never cleared, so a cancelled coordinator won't scan again: create a
    new one per scan. Running two scans on one instance at the same time
    is not supported.
    """

    def __init__(self, config: Optional[ScanConfig] = None):
        self.config = config or ScanConfig()
        self._cancel_event = threading.Event()
        self._status = ScanStatus.IDLE

    @property
    def status(self) -> ScanStatus:
        return self._status

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        self._cancel_event.set()

    def _probe(self, host: str, task: ProbeTask) -> Optional[PortResult]:
        # Resolved through the module so tests can swap the probes out
        if task.protocol is Protocol.TCP:
            return probes.probe_tcp(host, task.port, timeout=self.config.tcp_timeout)
        return probes.probe_udp(
            host, task.port, timeout=self.config.udp_timeout, bufsize=self.config.udp_bufsize
        )

    @staticmethod
    def _notify(callback: Callable, *args) -> None:
        try:
            callback(*args)
        except Exception:
            log.exception("Observer callback %s raised", getattr(callback, "__name__", repr(callback)))

    def scan(self, request: ScanRequest, observer: Optional[ScanObserver] = None) -> None:
        """
        Probe every (port, protocol) pair of `request`.

        Results are delivered through `observer`; nothing is returned.
        """
        observer = observer or ScanObserver()
        self._status = ScanStatus.RUNNING

        total = request.total_tasks
        completed = 0
        open_ports: List[PortResult] = []
        started = time.monotonic()
        log.info(
            "Scanning %s ports %d-%d over %s (%d tasks, %d workers)",
            request.host, request.start_port, request.end_port,
            request.protocol.display_name, total, request.max_workers,
        )

        executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=request.max_workers, thread_name_prefix="probe"
        )
        futures: Dict[concurrent.futures.Future, ProbeTask] = {}
        pending: Set[concurrent.futures.Future] = set()
        work = iter(request.tasks())
        window = request.max_workers * self.config.queue_depth_factor

        def top_up():
            # Keep at most `window` tasks queued or running; stop feeding on cancel
            while len(pending) < window and not self.cancelled:
                task = next(work, None)
                if task is None:
                    return
                fut = executor.submit(self._probe, request.host, task)
                futures[fut] = task
                pending.add(fut)

        try:
            top_up()
            # Completion order, not submission order. The timeout lets us
            # notice cancel() even while every worker is stuck in a probe.
            while pending and not self.cancelled:
                done, _ = concurrent.futures.wait(
                    pending,
                    timeout=self.config.poll_interval,
                    return_when=concurrent.futures.FIRST_COMPLETED,
                )
                for fut in done:
                    if self.cancelled:
                        break
                    pending.discard(fut)
                    task = futures.pop(fut)
                    completed += 1
                    progress = completed * 100.0 / total

                    error: Optional[str] = None
                    try:
                        result = fut.result()
                    except Exception as e:
                        log.warning("Probe %s/%d failed: %r", task.protocol, task.port, e)
                        result = None
                        error = f"Error scanning {task.protocol.display_name} port {task.port}: {e}"

                    self._notify(observer.on_progress, task.port, progress)
                    if result is not None:
                        open_ports.append(result)
                        self._notify(observer.on_result, result)
                    if error is not None:
                        self._notify(observer.on_error, error)
                top_up()
        finally:
            self._shutdown(executor, pending)

        open_ports.sort(key=result_sort_key)
        elapsed = time.monotonic() - started

        if self.cancelled:
            self._status = ScanStatus.CANCELLED
            log.info("Scan of %s cancelled after %d/%d tasks (%.2fs)", request.host, completed, total, elapsed)
            return

        self._status = ScanStatus.COMPLETED
        log.info("Scan of %s finished: %d open in %.2fs", request.host, len(open_ports), elapsed)
        self._notify(observer.on_complete, open_ports)

    def _shutdown(self, executor: concurrent.futures.ThreadPoolExecutor, futures) -> None:
        """
        Release the pool. After cancel() queued probes are dropped at once;
        probes already running get the grace period to finish.
        """
        executor.shutdown(wait=False, cancel_futures=self.cancelled)
        unfinished = [f for f in futures if not f.done()]
        if not unfinished:
            return
        grace = self.config.shutdown_grace_seconds
        _, not_done = concurrent.futures.wait(unfinished, timeout=grace)
        if not_done:
            log.warning(
                "%d probe(s) still pending after %.1fs grace period, dropping queued work",
                len(not_done), grace,
            )
            executor.shutdown(wait=False, cancel_futures=True)


class CollectingObserver(ScanObserver):
    """Keeps the final result list and forwards every event to `inner`."""

    def __init__(self, inner: Optional[ScanObserver] = None):
        self.inner = inner
        self.results: List[PortResult] = []
        self.completed = False

    def on_progress(self, port, percentage):
        if self.inner:
            self.inner.on_progress(port, percentage)

    def on_result(self, result):
        if self.inner:
            self.inner.on_result(result)

    def on_complete(self, results):
        self.results = list(results)
        self.completed = True
        if self.inner:
            self.inner.on_complete(results)

    def on_error(self, message):
        if self.inner:
            self.inner.on_error(message)


def scan_host_ports(
    host: str,
    start_port: int,
    end_port: int,
    protocol: Protocol = Protocol.TCP,
    max_workers: int = 10,
    config: Optional[ScanConfig] = None,
    observer: Optional[ScanObserver] = None,
) -> List[PortResult]:
    """
    Blocking helper: scan and return the sorted results.
    Events are still forwarded to `observer` if given.
    """
    request = ScanRequest(host, start_port, end_port, protocol, max_workers)
    collector = CollectingObserver(observer)
    ScanCoordinator(config).scan(request, collector)
    return collector.results
