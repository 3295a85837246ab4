# ==============================================================================
# Tests for EmissionStats
# ==============================================================================
"""
Tests for the EmissionStats counters, periodic summaries and final summary.
"""

import logging
from unittest.mock import MagicMock

from recordsink.emitters.stats import EmissionStats, _precision

# ==============================================================================
# _precision helper
# ==============================================================================


class TestPrecision:
    """Tests for the _precision helper function."""

    def test_large_values_zero_decimals(self):
        assert _precision(10.0) == 0
        assert _precision(85.3) == 0

    def test_medium_values_one_decimal(self):
        assert _precision(1.0) == 1
        assert _precision(3.2) == 1

    def test_small_values_two_decimals(self):
        assert _precision(0.5) == 2
        assert _precision(0.01) == 2


# ==============================================================================
# Counters
# ==============================================================================


class TestCounters:
    """Tests for cumulative counters."""

    def test_record_delivered(self):
        stats = EmissionStats()
        stats.record_delivered(3, 120, encode_ms=1.0, upload_ms=20.0, load_ms=50.0, rows_loaded=3)
        stats.record_delivered(2, 80, encode_ms=1.0, upload_ms=20.0)
        assert stats.delivered_batches == 2
        assert stats.delivered_records == 5
        assert stats.delivered_bytes == 200
        assert stats.rows_loaded == 3

    def test_record_failed(self):
        stats = EmissionStats()
        stats.record_failed(3, "uploading")
        stats.record_failed(4, "loading")
        stats.record_failed(1, "loading")
        assert stats.failed_batches == 3
        assert stats.failed_records == 8
        assert stats.failures_by_stage == {"uploading": 1, "loading": 2}


# ==============================================================================
# Summaries
# ==============================================================================


class TestSummaries:
    """Tests for periodic and final log output."""

    def test_periodic_summary_logged(self):
        log = MagicMock()
        stats = EmissionStats(summary_interval_seconds=0.0, log=log)
        stats.record_delivered(10, 100, encode_ms=1.0, upload_ms=2.0)
        messages = [c.args[0] for c in log.info.call_args_list]
        assert any(m.startswith("Throughput") for m in messages)

    def test_no_periodic_summary_before_interval(self):
        log = MagicMock()
        stats = EmissionStats(summary_interval_seconds=3600.0, log=log)
        stats.record_delivered(10, 100, encode_ms=1.0, upload_ms=2.0)
        log.info.assert_not_called()

    def test_final_summary_without_batches(self, caplog):
        with caplog.at_level(logging.INFO):
            EmissionStats().log_final_summary()
        assert "No batches emitted." in caplog.text

    def test_final_summary_reports_failures(self, caplog):
        stats = EmissionStats(summary_interval_seconds=3600.0)
        stats.record_delivered(3, 30, encode_ms=1.0, upload_ms=2.0)
        stats.record_failed(2, "verifying")
        with caplog.at_level(logging.INFO):
            stats.log_final_summary()
        assert "Final: 3 records in 1 batches" in caplog.text
        assert "verifying=1" in caplog.text
