from __future__ import annotations

"""backend/faultline/services/exchange.py

Simulated price pipeline used by the ``domains`` CLI demo.

- ExchangeAPI.fetch_price: network error, then rate limit, then success;
  the symbol "INVALID" is always rejected permanently
- DatabaseService.save_price: temporary pool exhaustion for the first
  ``fail_times`` calls
- PriceService.update_price: fetch + save, wrapping failures in the usecase
  domain
"""

from faultline import errors, logger

INVALID_SYMBOL = "INVALID"


class ExchangeAPI:
    """Exchange client whose responses follow a fixed script."""

    def __init__(self) -> None:
        self.calls = 0

    def fetch_price(self, symbol: str) -> float:
        self.calls += 1

        if symbol == INVALID_SYMBOL:
            raise errors.new_exchange_error("INVALID_SYMBOL", f"symbol {symbol} not found", False)
        if self.calls == 1:
            raise errors.new_exchange_error("NETWORK_ERROR", "connection timeout", True)
        if self.calls == 2:
            raise errors.new_exchange_error("RATE_LIMIT", "too many requests", True)
        return 50000.0


class DatabaseService:
    def __init__(self, fail_times: int = 0) -> None:
        self.fail_times = fail_times
        self.calls = 0

    def save_price(self, symbol: str, price: float) -> None:
        self.calls += 1
        if self.calls > self.fail_times:
            return

        err = errors.new("connection pool exhausted")
        err = errors.mark_temporary(err)
        err = errors.with_domain(err, errors.DOMAIN_ADAPTERS)
        err = errors.with_hint(err, "Database connection pool is full, retry after a short delay")
        raise errors.wrap_with_stack(err, "failed to save price to database")


class PriceService:
    def __init__(self, api: ExchangeAPI, db: DatabaseService) -> None:
        self.api = api
        self.db = db

    def update_price(self, symbol: str) -> float:
        try:
            price = self.api.fetch_price(symbol)
        except errors.FaultlineError as err:
            raise errors.wrap_with_domain(err, "failed to update price", errors.DOMAIN_USECASE)

        try:
            self.db.save_price(symbol, price)
        except errors.FaultlineError as err:
            raise errors.wrap_with_domain(err, "failed to persist price", errors.DOMAIN_USECASE)

        logger.info("Price updated successfully", "symbol", symbol, "price", price)
        return price
