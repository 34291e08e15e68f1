from __future__ import annotations

"""
Error chain, classification and domain helpers.

Shortcut imports so callers can write ``from faultline import errors`` and
use ``errors.wrap(...)``, ``errors.mark_temporary(...)`` and friends.
"""

from .chain import (  # noqa: F401
    NO_DOMAIN,
    Domain,
    FaultlineError,
    SourceLocation,
    errorf,
    find,
    format_verbose,
    get_all_details,
    get_all_hints,
    get_domain,
    get_one_line_source,
    get_telemetry_keys,
    is_,
    iter_chain,
    mark,
    named_domain,
    new,
    unwrap_all,
    unwrap_once,
    with_detail,
    with_detailf,
    with_domain,
    with_hint,
    with_hintf,
    with_stack,
    with_telemetry,
    wrap,
    wrapf,
)
from .classification import (  # noqa: F401
    DOMAIN_ADAPTERS,
    DOMAIN_EXCHANGE,
    DOMAIN_USECASE,
    ERR_NOT_FOUND,
    ERR_PERMANENT,
    ERR_RATE_LIMITED,
    ERR_TEMPORARY,
    ERR_TIMEOUT,
    ExchangeError,
    is_exchange_code,
    is_permanent,
    is_temporary,
    mark_permanent,
    mark_temporary,
    new_exchange_error,
    wrap_with_domain,
    wrap_with_stack,
)
