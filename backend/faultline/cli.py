"""
CLI interface for faultline.

Walk-throughs of the error toolkit, plus a command to run the HTTP demo:

- basic:   enriched errors (hints, details, wrapping) logged with full context
- domains: retry control driven by temporary/permanent marks, and domains
- panics:  manual recovery, thread recovery, and panic_handler re-raising
- serve:   the FastAPI user API under uvicorn
"""

import threading

import click

from faultline import __version__, errors, logger
from faultline.config import get_settings
from faultline.services.exchange import DatabaseService, ExchangeAPI, PriceService
from faultline.services.panics import panic_handler, recover, safe_go
from faultline.services.retry import retry_with_backoff


@click.group()
@click.version_option(version=__version__, prog_name="faultline")
@click.option(
    "--log-level",
    default=None,
    help="debug, info, warn or error (anything else means info). Defaults to LOG_LEVEL.",
)
@click.pass_context
def main(ctx, log_level):
    """
    faultline - structured logging and classified errors.
    """
    settings = get_settings()
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    logger.set_level(log_level if log_level is not None else settings.log_level)


# ---- basic ----


def _perform_database_operation(should_fail: bool) -> None:
    if should_fail:
        err = errors.new("query execution failed")
        err = errors.with_hint(err, "Check if the database is accessible")
        err = errors.with_detailf(err, "query=%s timeout=%dms", "SELECT * FROM users", 5000)
        raise errors.wrap(err, "failed to fetch user data")


@main.command()
def basic():
    """Build enriched errors and log them with hints, details and source."""
    click.echo("=== Plain exception chaining ===")
    try:
        try:
            raise TimeoutError("connection timeout")
        except TimeoutError as exc:
            raise RuntimeError("database connection failed") from exc
    except RuntimeError as err:
        click.echo(f"Error: {err}")
        click.echo(errors.format_verbose(err))

    click.echo("\n=== Wrapped error with stack ===")
    err = errors.wrap(errors.new("connection timeout"), "database connection failed")
    click.echo(f"Error: {err}")
    click.echo(errors.format_verbose(err))

    click.echo("\n=== Structured logging of an enriched error ===")
    try:
        _perform_database_operation(True)
    except errors.FaultlineError as err:
        logger.log_error(
            "Database operation failed", err,
            "user_id", 12345,
            "operation", "fetch_user_data",
        )

    click.echo("\n=== Creating errors with context ===")
    enriched = errors.new("insufficient balance")
    enriched = errors.with_hint(enriched, "User needs to deposit more funds")
    enriched = errors.with_detailf(enriched, "balance=%d required=%d", 100, 500)
    final = errors.wrap(enriched, "payment processing failed")
    logger.log_error("Payment failed", final, "payment_id", "pay_123", "amount", 500)


# ---- domains ----


@main.command()
@click.option("--max-attempts", type=int, default=None, help="Retry attempts (default: settings).")
@click.option("--initial-delay", type=float, default=None, help="First backoff in seconds.")
@click.pass_context
def domains(ctx, max_attempts, initial_delay):
    """Retry temporary failures, stop on permanent ones, show domains."""
    settings = ctx.obj["settings"]
    max_attempts = max_attempts if max_attempts is not None else settings.retry_max_attempts
    initial_delay = (
        initial_delay if initial_delay is not None else settings.retry_initial_delay_seconds
    )

    svc = PriceService(ExchangeAPI(), DatabaseService(fail_times=1))

    click.echo("=== Example 1: Retrying temporary errors ===")
    try:
        retry_with_backoff(
            lambda: svc.update_price("BTC/USD"),
            max_attempts,
            initial_delay,
            max_delay=settings.retry_max_delay_seconds,
        )
        click.echo("Final result: price updated successfully")
    except errors.FaultlineError as err:
        click.echo(f"Final result: {err}")

    click.echo("\n=== Example 2: Permanent error (no retry) ===")
    try:
        retry_with_backoff(
            lambda: svc.update_price("INVALID"),
            max_attempts,
            initial_delay,
            max_delay=settings.retry_max_delay_seconds,
        )
    except errors.FaultlineError as err:
        click.echo(f"Error domain: {errors.get_domain(err)}")
        if errors.is_permanent(err):
            click.echo("This error is permanent and should not be retried")
        if errors.is_exchange_code(err, "INVALID_SYMBOL"):
            click.echo("Exchange rejected the symbol")

    click.echo("\n=== Example 3: Domain-based error classification ===")
    usecase_err = errors.with_domain(errors.new("business logic validation failed"), errors.DOMAIN_USECASE)
    adapter_err = errors.with_domain(errors.new("database query failed"), errors.DOMAIN_ADAPTERS)
    exchange_err = errors.new_exchange_error("API_ERROR", "exchange API failed", True)

    click.echo(f"Usecase error domain: {errors.get_domain(usecase_err)}")
    click.echo(f"Adapter error domain: {errors.get_domain(adapter_err)}")
    click.echo(f"Exchange error domain: {errors.get_domain(exchange_err)}")
    click.echo(f"Exchange telemetry keys: {', '.join(errors.get_telemetry_keys(exchange_err))}")


# ---- panics ----


def _risky_operation(panic_type: str) -> None:
    if panic_type == "none_attribute":
        value = None
        value.upper()
    elif panic_type == "index_out_of_range":
        [1, 2, 3][10]
    elif panic_type == "explicit":
        raise RuntimeError("explicit panic triggered")
    elif panic_type:
        raise RuntimeError(f"unknown panic type: {panic_type}")


def _process_task(task_id: int, should_panic: bool) -> None:
    if should_panic:
        raise RuntimeError(f"task {task_id} failed unexpectedly")
    click.echo(f"Task {task_id} completed")


def _guarded_task(task_id: int, should_panic: bool) -> None:
    with recover(f"task-worker-{task_id}", "task_id", task_id):
        _process_task(task_id, should_panic)


@main.command()
@click.option("--reraise", is_flag=True, help="Also show panic_handler re-raising.")
def panics(reraise):
    """Recover from failures in blocks and threads."""
    click.echo("=== Example 1: Manual recovery ===")
    for panic_type in ("none_attribute", "index_out_of_range", "explicit", ""):
        with recover("manual", "panic_type", panic_type or "none") as recovery:
            _risky_operation(panic_type)
        if recovery.recovered:
            click.echo(f"Recovered from panic: {recovery.error}")
        else:
            click.echo("Operation completed without panic")

    click.echo("\n=== Example 2: Threads with recovery ===")
    threads = [
        threading.Thread(target=_guarded_task, args=(task_id, task_id == 2))
        for task_id in (1, 2, 3)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    click.echo("All threads completed (task 2 failed but was recovered)")

    click.echo("\n=== Example 3: safe_go ===")
    safe_go("safe-worker", _process_task, 4, False).join()

    if reraise:
        click.echo("\n=== Example 4: panic_handler re-raises after logging ===")
        try:
            with panic_handler("main"):
                raise RuntimeError("critical error in main")
        except RuntimeError as exc:
            click.echo(f"Caught re-raised panic: {exc}")


# ---- serve ----


@main.command()
@click.option("--host", default=None, help="Bind address (default: settings).")
@click.option("--port", type=int, default=None, help="Port (default: settings).")
@click.pass_context
def serve(ctx, host, port):
    """Run the demo HTTP API."""
    import uvicorn

    settings = ctx.obj["settings"]
    uvicorn.run(
        "faultline.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
