"""Tests for ProbeTracker."""

from __future__ import annotations

import time

from cargo_bounds.progress import ProbeTracker


class TestProbeTracker:
    def test_basic_flow(self):
        tracker = ProbeTracker()
        tracker.start("serde", "1.0.0")
        tracker.finish("OK")

        summary = tracker.get_summary()
        assert summary["probes"] == 1
        assert summary["failed"] == 0
        assert tracker.probes[0].status == "OK"

    def test_failed_and_error_counted(self):
        tracker = ProbeTracker()
        for version, status in (("1.0.0", "FAILED"), ("1.1.0", "ERROR"), ("1.2.0", "OK")):
            tracker.start("serde", version)
            tracker.finish(status)

        assert tracker.get_summary()["failed"] == 2

    def test_duration(self):
        tracker = ProbeTracker()
        tracker.start("serde", "1.0.0")
        time.sleep(0.01)
        tracker.finish("OK")

        p = tracker.probes[0]
        assert p.duration is not None
        assert p.duration >= 0.01

    def test_output_keeps_last_line(self):
        tracker = ProbeTracker()
        tracker.start("serde", "1.0.0")
        tracker.output("   Compiling serde v1.0.0")
        tracker.output("")
        tracker.output("    Finished dev profile")

        assert tracker.probes[0].last_line == "    Finished dev profile"

    def test_output_outside_probe_ignored(self):
        tracker = ProbeTracker()
        tracker.output("stray")
        assert tracker.probes == []

    def test_callback(self):
        events = []
        tracker = ProbeTracker()
        tracker.callbacks.append(lambda p: events.append((p.version, p.status)))

        tracker.start("serde", "1.0.0")
        tracker.finish("OK")

        assert events == [("1.0.0", "running"), ("1.0.0", "OK")]

    def test_callback_error_does_not_crash(self):
        tracker = ProbeTracker()
        tracker.callbacks.append(lambda p: 1 / 0)

        tracker.start("serde", "1.0.0")
        tracker.finish("OK")

        assert tracker.probes[0].status == "OK"

    def test_finish_without_start(self):
        tracker = ProbeTracker()
        tracker.finish("OK")
        assert tracker.get_summary()["probes"] == 0
