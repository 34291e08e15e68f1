"""CLI walk-through tests using click's CliRunner."""

import logging

import pytest
from click.testing import CliRunner

from faultline import __version__, logger
from faultline.cli import main


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def quiet_logger(log_capture):
    # --log-level swaps the logger through set_level, which keeps the capture sink
    yield log_capture


class TestBasic:
    def test_basic_output(self, runner, log_capture):
        result = runner.invoke(main, ["basic"])

        assert result.exit_code == 0, result.output
        assert "Error: database connection failed" in result.output
        assert "Error: database connection failed: connection timeout" in result.output

        failed = log_capture.by_msg("Database operation failed")
        assert failed[0]["user_id"] == 12345
        assert failed[0]["error_hints"] == ["Check if the database is accessible"]
        assert failed[0]["error"] == "failed to fetch user data: query execution failed"

        payment = log_capture.by_msg("Payment failed")
        assert payment[0]["payment_id"] == "pay_123"
        assert payment[0]["error_details"] == ["balance=100 required=500"]


class TestDomains:
    def test_domains_output(self, runner, log_capture):
        result = runner.invoke(main, ["domains", "--initial-delay", "0"])

        assert result.exit_code == 0, result.output
        assert "Final result: price updated successfully" in result.output
        assert "Error domain: usecase" in result.output
        assert "This error is permanent and should not be retried" in result.output
        assert "Exchange rejected the symbol" in result.output
        assert "Usecase error domain: usecase" in result.output
        assert "Adapter error domain: adapters" in result.output
        assert "Exchange error domain: exchange" in result.output
        assert "Exchange telemetry keys: exchange.error.API_ERROR" in result.output

        assert log_capture.by_msg("Operation succeeded after retry")[0]["attempt"] == 4


class TestPanics:
    def test_manual_and_thread_recovery(self, runner, log_capture):
        result = runner.invoke(main, ["panics"])

        assert result.exit_code == 0, result.output
        assert result.output.count("Recovered from panic: panic recovered: ") == 3
        assert "Operation completed without panic" in result.output
        assert "All threads completed (task 2 failed but was recovered)" in result.output
        assert "Task 4 completed" in result.output
        assert "Caught re-raised panic" not in result.output

        worker = log_capture.by_msg("[task-worker-2] Panic recovered")
        assert worker[0]["task_id"] == 2
        assert len(log_capture.by_msg("[manual] Panic recovered")) == 3

    def test_reraise(self, runner, log_capture):
        result = runner.invoke(main, ["panics", "--reraise"])

        assert result.exit_code == 0, result.output
        assert "Caught re-raised panic: critical error in main" in result.output
        assert len(log_capture.by_msg("[main] Panic recovered")) == 1


class TestGlobalOptions:
    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_log_level_filters_records(self, runner, log_capture):
        result = runner.invoke(main, ["--log-level", "error", "domains", "--initial-delay", "0"])

        assert result.exit_code == 0, result.output
        assert log_capture.at_level("INFO") == []
        assert log_capture.at_level("WARN") == []
        assert logger.get_logger().level == logging.ERROR
