"""Tests for the producer / worker pool / collector pipeline."""

import threading
import time
from collections import Counter

import pytest

from intermediate_auditor.scheduler import ProbeScheduler


class RecordingProbe:
    def __init__(self, findings=None, delay=0.0):
        self.findings = findings or {}
        self.delay = delay
        self.calls = Counter()
        self._lock = threading.Lock()

    def __call__(self, hostname):
        with self._lock:
            self.calls[hostname] += 1
        if self.delay:
            time.sleep(self.delay)
        return self.findings.get(hostname, "")


@pytest.mark.parametrize("count,workers", [(0, 10), (1, 10), (3, 10), (10, 10), (57, 4), (200, 1)])
def test_every_hostname_probed_once(count, workers):
    hostnames = [f"host{i}.example" for i in range(count)]
    probe = RecordingProbe()
    reported = []

    found = ProbeScheduler(probe, workers=workers, report=reported.append).run(hostnames)

    assert found == 0
    assert reported == []
    assert sum(probe.calls.values()) == count
    assert set(probe.calls) == set(hostnames)
    assert all(n == 1 for n in probe.calls.values())


def test_every_finding_reported_once():
    hostnames = [f"host{i}.example" for i in range(40)]
    findings = {h: f"leaf-{h}" for h in hostnames[::3]}
    reported = []

    found = ProbeScheduler(RecordingProbe(findings, delay=0.001), workers=7, report=reported.append).run(hostnames)

    assert found == len(findings)
    assert sorted(reported) == sorted(findings.values())


def test_run_returns_after_slow_report():
    reported = []

    def slow_report(verdict):
        time.sleep(0.05)
        reported.append(verdict)

    ProbeScheduler(RecordingProbe({"a.com": "a.com"}), workers=2, report=slow_report).run(["a.com", "b.com"])

    assert reported == ["a.com"]


def test_probe_exception_does_not_stop_the_batch(caplog):
    def probe(hostname):
        if hostname == "bad.example":
            raise RuntimeError("boom")
        return hostname

    reported = []
    found = ProbeScheduler(probe, workers=1, report=reported.append).run(["bad.example", "good.example"])

    assert found == 1
    assert reported == ["good.example"]
    assert "bad.example" in caplog.text


def test_report_exception_does_not_deadlock():
    def report(verdict):
        raise RuntimeError("stdout closed")

    hostnames = [f"h{i}" for i in range(30)]
    found = ProbeScheduler(lambda h: h, workers=2, report=report).run(hostnames)
    assert found == 30


def test_work_runs_in_parallel():
    hostnames = [f"h{i}" for i in range(8)]
    start = time.monotonic()
    ProbeScheduler(RecordingProbe(delay=0.2), workers=8, report=lambda v: None).run(hostnames)
    # serial execution would take 1.6s
    assert time.monotonic() - start < 1.2


def test_accepts_generator_input():
    probe = RecordingProbe()
    ProbeScheduler(probe, workers=3, report=lambda v: None).run(f"h{i}" for i in range(5))
    assert sum(probe.calls.values()) == 5


def test_invalid_worker_count():
    with pytest.raises(ValueError):
        ProbeScheduler(lambda h: "", workers=0)
