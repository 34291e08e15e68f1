"""
Tests for the demo services: the in-memory user store and the simulated
price pipeline driven through retry_with_backoff.
"""

import random

import pytest

from conftest import RecordingSignal
from faultline import errors
from faultline.services.exchange import DatabaseService, ExchangeAPI, PriceService
from faultline.services.retry import retry_with_backoff
from faultline.services.users import UserService


# =============================================================================
# USERS
# =============================================================================

class TestUserService:
    def test_seeded_users(self):
        svc = UserService()
        assert [svc.get_user(i).name for i in (1, 2, 3)] == ["Alice", "Bob", "Charlie"]

    def test_unknown_user_is_permanent_not_found(self):
        with pytest.raises(errors.FaultlineError) as exc_info:
            UserService().get_user(42)

        err = exc_info.value
        assert str(err) == "user with id 42 not found"
        assert errors.is_permanent(err)
        assert errors.is_(err, errors.ERR_NOT_FOUND)
        assert errors.get_domain(err) is errors.DOMAIN_ADAPTERS

    def test_simulated_outage_is_temporary(self):
        svc = UserService(failure_rate=1.0)

        with pytest.raises(errors.FaultlineError) as exc_info:
            svc.get_user(1)

        err = exc_info.value
        assert errors.is_temporary(err)
        assert not errors.is_permanent(err)
        assert errors.is_(err, errors.ERR_TIMEOUT)
        assert errors.get_all_hints(err) == ["Retry the request"]

    def test_failure_rate_uses_rng(self):
        class FixedRandom(random.Random):
            def random(self):
                return 0.9

        svc = UserService(failure_rate=0.5, rng=FixedRandom())
        assert svc.get_user(1).id == 1

    def test_create_user_assigns_next_id(self):
        svc = UserService()
        first = svc.create_user("David", "david@example.com")
        second = svc.create_user("Eve", "eve@example.com")
        assert (first.id, second.id) == (4, 5)
        assert svc.get_user(5).email == "eve@example.com"

    @pytest.mark.parametrize(
        "name, email, message, hint",
        [
            ("", "x@example.com", "name is required", "Provide a valid name"),
            ("Frank", "", "email is required", "Provide a valid email address"),
        ],
    )
    def test_create_user_validation(self, name, email, message, hint):
        with pytest.raises(errors.FaultlineError) as exc_info:
            UserService().create_user(name, email)

        err = exc_info.value
        assert str(err) == message
        assert errors.is_permanent(err)
        assert errors.get_domain(err) is errors.DOMAIN_USECASE
        assert errors.get_all_hints(err) == [hint]


# =============================================================================
# PRICE PIPELINE
# =============================================================================

class TestExchangeAPI:
    def test_scripted_responses(self):
        api = ExchangeAPI()

        with pytest.raises(errors.FaultlineError) as first:
            api.fetch_price("BTC/USD")
        with pytest.raises(errors.FaultlineError) as second:
            api.fetch_price("BTC/USD")

        assert errors.is_exchange_code(first.value, "NETWORK_ERROR")
        assert errors.is_exchange_code(second.value, "RATE_LIMIT")
        assert errors.is_temporary(first.value)
        assert api.fetch_price("BTC/USD") == 50000.0

    def test_invalid_symbol_is_permanent(self):
        with pytest.raises(errors.FaultlineError) as exc_info:
            ExchangeAPI().fetch_price("INVALID")
        assert errors.is_permanent(exc_info.value)
        assert errors.is_exchange_code(exc_info.value, "INVALID_SYMBOL")


class TestDatabaseService:
    def test_fails_then_succeeds(self):
        db = DatabaseService(fail_times=1)

        with pytest.raises(errors.FaultlineError) as exc_info:
            db.save_price("BTC/USD", 1.0)

        err = exc_info.value
        assert str(err) == "failed to save price to database: connection pool exhausted"
        assert errors.is_temporary(err)
        assert errors.get_domain(err) is errors.DOMAIN_ADAPTERS

        db.save_price("BTC/USD", 1.0)


class TestPriceServiceWithRetry:
    def test_recovers_after_temporary_failures(self, log_capture):
        svc = PriceService(ExchangeAPI(), DatabaseService(fail_times=1))
        signal = RecordingSignal()

        price = retry_with_backoff(lambda: svc.update_price("BTC/USD"), 5, 0.1, cancel=signal)

        assert price == 50000.0
        assert signal.waits == pytest.approx([0.12, 0.24, 0.48])
        assert len(log_capture.by_msg("Operation failed with temporary error, retrying")) == 3
        recovered = log_capture.by_msg("Operation succeeded after retry")
        assert recovered[0]["attempt"] == 4
        assert log_capture.by_msg("Price updated successfully")[0]["symbol"] == "BTC/USD"

    def test_failures_carry_usecase_domain(self):
        svc = PriceService(ExchangeAPI(), DatabaseService())

        with pytest.raises(errors.FaultlineError) as exc_info:
            svc.update_price("BTC/USD")

        err = exc_info.value
        assert str(err).startswith("failed to update price: ")
        assert errors.get_domain(err) is errors.DOMAIN_USECASE
        assert errors.is_temporary(err)

    def test_permanent_error_stops_immediately(self, log_capture):
        api = ExchangeAPI()
        svc = PriceService(api, DatabaseService())
        signal = RecordingSignal()

        with pytest.raises(errors.FaultlineError) as exc_info:
            retry_with_backoff(lambda: svc.update_price("INVALID"), 5, 0.1, cancel=signal)

        err = exc_info.value
        assert api.calls == 1
        assert signal.waits == []
        assert errors.is_permanent(err)
        assert errors.is_exchange_code(err, "INVALID_SYMBOL")
        assert errors.get_domain(err) is errors.DOMAIN_USECASE

        aborted = log_capture.by_msg("Operation failed with permanent error")
        assert aborted[0]["retry"] is False
        assert aborted[0]["error_domain"] == "usecase"
