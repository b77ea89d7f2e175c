from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Iterable

from .models import AuditConfig
from .probe import DEFAULT_PORT, DEFAULT_TIMEOUT, Prober


logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 10

# Marks a closed queue: no item is put after it by the same producer.
_STOP = object()


class ProbeScheduler:
    """
    Fans hostnames out to a fixed pool of worker threads and fans their
    verdicts back into a single collector.

    producer -> work queue -> N workers -> result queue -> collector

    Every hostname is probed exactly once and every non-empty verdict is
    passed to `report` exactly once, in arrival order.
    """

    def __init__(
        self,
        probe: Callable[[str], str],
        *,
        workers: int = DEFAULT_WORKERS,
        report: Callable[[str], None] = print,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.probe = probe
        self.workers = workers
        self.report = report
        self.findings = 0

    def _produce(self, hostnames: Iterable[str], work_q: queue.Queue) -> None:
        try:
            for hostname in hostnames:
                work_q.put(hostname)
        finally:
            for _ in range(self.workers):
                work_q.put(_STOP)

    def _work(self, work_q: queue.Queue, result_q: queue.Queue) -> None:
        while True:
            hostname = work_q.get()
            if hostname is _STOP:
                return
            try:
                verdict = self.probe(hostname)
            except Exception:
                logger.exception("unexpected error auditing %s", hostname)
                verdict = ""
            result_q.put(verdict)

    def _collect(self, result_q: queue.Queue) -> None:
        while True:
            verdict = result_q.get()
            if verdict is _STOP:
                return
            if not verdict:
                continue
            self.findings += 1
            try:
                self.report(verdict)
            except Exception:
                logger.exception("failed to report finding %s", verdict)

    def run(self, hostnames: Iterable[str]) -> int:
        """
        Audit all hostnames and return the number of findings reported.
        Returns only after the last finding has been reported.
        """
        self.findings = 0
        work_q: queue.Queue = queue.Queue()
        result_q: queue.Queue = queue.Queue(maxsize=self.workers)

        producer = threading.Thread(
            target=self._produce, args=(hostnames, work_q), name="audit-producer", daemon=True
        )
        workers = [
            threading.Thread(target=self._work, args=(work_q, result_q), name=f"audit-worker-{i}", daemon=True)
            for i in range(self.workers)
        ]
        collector = threading.Thread(
            target=self._collect, args=(result_q,), name="audit-collector", daemon=True
        )

        collector.start()
        for w in workers:
            w.start()
        producer.start()

        producer.join()
        for w in workers:
            w.join()
        # all workers gone, nothing can put on result_q any more
        result_q.put(_STOP)
        collector.join()

        logger.debug("audit finished with %d finding(s)", self.findings)
        return self.findings


def audit_hostnames(
    hostnames: Iterable[str],
    config: AuditConfig,
    *,
    workers: int = DEFAULT_WORKERS,
    port: int = DEFAULT_PORT,
    timeout: float = DEFAULT_TIMEOUT,
    report: Callable[[str], None] = print,
) -> int:
    prober = Prober(config, port=port, timeout=timeout)
    return ProbeScheduler(prober.probe, workers=workers, report=report).run(hostnames)
