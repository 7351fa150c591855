from __future__ import annotations

import unittest

from guestpass.observability.telemetry import (
    counter,
    get_counter,
    get_latency_stats,
    reset_metrics,
    time_block,
)


class TelemetryTests(unittest.TestCase):
    def setUp(self):
        reset_metrics()

    def test_time_block_appends_ms_suffix(self):
        metric_name = "intake.extractor.latency"

        with time_block(metric_name):
            pass

        stats = get_latency_stats(metric_name)
        self.assertEqual(stats["count"], 1)
        self.assertGreaterEqual(stats["p95"], 0.0)
        self.assertEqual(get_latency_stats("intake.extractor.latency_ms")["count"], 1)

    def test_time_block_records_on_exception(self):
        with self.assertRaises(ValueError), time_block("gmail.poll.latency"):
            raise ValueError("boom")

        self.assertEqual(get_latency_stats("gmail.poll.latency")["count"], 1)

    def test_counter_increments(self):
        before = get_counter("test.counter")
        counter("test.counter")
        counter("test.counter", 2)
        self.assertEqual(get_counter("test.counter"), before + 3)

    def test_empty_stats(self):
        self.assertEqual(get_latency_stats("never.recorded")["count"], 0)

    def test_reset_clears_everything(self):
        counter("test.counter")
        with time_block("test.latency"):
            pass

        reset_metrics()
        self.assertEqual(get_counter("test.counter"), 0)
        self.assertEqual(get_latency_stats("test.latency")["count"], 0)


if __name__ == "__main__":
    unittest.main()
