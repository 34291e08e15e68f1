from __future__ import annotations

"""backend/faultline/errors/chain.py

Error-chain primitives built on Python's native exception chaining.

An error value is an exception; its cause chain is followed through
``__cause__``, exactly what ``raise X from Y`` produces. Every helper here
returns a *new* exception wrapping its input, so an error that has been
handed out is never modified afterwards.

This module provides:
- FaultlineError: base class for every error built here
- new / errorf / wrap / wrapf / with_stack: constructors that capture the
  creating stack
- with_hint / with_detail / with_domain / mark / with_telemetry: annotations
- is_ / find / iter_chain / unwrap_*: chain traversal
- get_all_hints / get_all_details / get_domain / get_telemetry_keys /
  get_one_line_source / format_verbose: read-back helpers used by the
  logger and the HTTP layer
"""

import os
import threading
import traceback
from typing import Iterator, NamedTuple, Optional, Type, TypeVar

E = TypeVar("E", bound=BaseException)

# Frames from this package are dropped from captured stacks so the innermost
# frame is the caller that created the error.
_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))
_STACK_LIMIT = 64


def _capture_stack() -> traceback.StackSummary:
    frames = list(traceback.extract_stack(limit=_STACK_LIMIT))
    while frames and os.path.abspath(frames[-1].filename).startswith(_PACKAGE_DIR):
        frames.pop()
    return traceback.StackSummary.from_list(frames)


def _format(fmt: str, args: tuple) -> str:
    return fmt % args if args else fmt


# ---- Domains ----


class Domain:
    """Named error category. One instance per name; compare by identity."""

    __slots__ = ("name",)

    def __init__(self, name: str):
        self.name = name

    def __bool__(self) -> bool:
        return bool(self.name)

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"Domain({self.name!r})"


NO_DOMAIN = Domain("")

_domains: dict[str, Domain] = {}
_domains_lock = threading.Lock()


def named_domain(name: str) -> Domain:
    """Return the registered domain for ``name``, creating it on first use."""
    with _domains_lock:
        domain = _domains.get(name)
        if domain is None:
            domain = Domain(name)
            _domains[name] = domain
        return domain


# ---- Error types ----


class FaultlineError(Exception):
    """Base class for every error built by this package."""

    stack: Optional[traceback.StackSummary] = None

    def describe(self) -> str:
        return str(self)


class LeafError(FaultlineError):
    """Root-cause error created by ``new`` / ``errorf``."""

    def __init__(self, message: str, stack: Optional[traceback.StackSummary] = None):
        super().__init__(message)
        self.message = message
        self.stack = stack

    def __str__(self) -> str:
        return self.message


class Wrapper(FaultlineError):
    """A chain node wrapping ``cause``. Renders as its cause by default."""

    def __init__(self, cause: BaseException):
        super().__init__(cause)
        self.cause = cause
        self.__cause__ = cause
        self.__suppress_context__ = True

    def __str__(self) -> str:
        return str(self.cause)


class WithMessage(Wrapper):
    def __init__(self, cause: BaseException, message: str, stack=None):
        super().__init__(cause)
        self.message = message
        self.stack = stack

    def __str__(self) -> str:
        return f"{self.message}: {self.cause}"

    def describe(self) -> str:
        return f"wrapper: {self.message}"


class WithStack(Wrapper):
    def __init__(self, cause: BaseException, stack: traceback.StackSummary):
        super().__init__(cause)
        self.stack = stack

    def describe(self) -> str:
        return "attached stack trace"


class WithHint(Wrapper):
    def __init__(self, cause: BaseException, hint: str):
        super().__init__(cause)
        self.hint = hint

    def describe(self) -> str:
        return f"hint: {self.hint}"


class WithDetail(Wrapper):
    def __init__(self, cause: BaseException, detail: str):
        super().__init__(cause)
        self.detail = detail

    def describe(self) -> str:
        return f"detail: {self.detail}"


class WithDomain(Wrapper):
    def __init__(self, cause: BaseException, domain: Domain):
        super().__init__(cause)
        self.domain = domain

    def describe(self) -> str:
        return f"domain: {self.domain}"


class WithMark(Wrapper):
    def __init__(self, cause: BaseException, reference: BaseException):
        super().__init__(cause)
        self.reference = reference

    def describe(self) -> str:
        return f"mark: {self.reference}"


class WithTelemetry(Wrapper):
    def __init__(self, cause: BaseException, keys: tuple[str, ...]):
        super().__init__(cause)
        self.keys = keys

    def describe(self) -> str:
        return "telemetry keys: " + ", ".join(self.keys)


class SourceLocation(NamedTuple):
    file: str
    line: int
    function: str

    def __str__(self) -> str:
        return f"{self.file}:{self.line} in {self.function}"


# ---- Constructors ----


def new(message: str) -> FaultlineError:
    return LeafError(message, stack=_capture_stack())


def errorf(fmt: str, *args) -> FaultlineError:
    return LeafError(_format(fmt, args), stack=_capture_stack())


def wrap(err: Optional[BaseException], message: str) -> Optional[FaultlineError]:
    """Prefix ``err`` with ``message`` and record where the wrap happened.

    Returns None when ``err`` is None so call sites can wrap unconditionally.
    """
    if err is None:
        return None
    return WithMessage(err, message, stack=_capture_stack())


def wrapf(err: Optional[BaseException], fmt: str, *args) -> Optional[FaultlineError]:
    if err is None:
        return None
    return WithMessage(err, _format(fmt, args), stack=_capture_stack())


def with_stack(err: Optional[BaseException]) -> Optional[FaultlineError]:
    if err is None:
        return None
    return WithStack(err, _capture_stack())


def with_hint(err: Optional[BaseException], hint: str) -> Optional[FaultlineError]:
    if err is None:
        return None
    return WithHint(err, hint)


def with_hintf(err: Optional[BaseException], fmt: str, *args) -> Optional[FaultlineError]:
    return with_hint(err, _format(fmt, args))


def with_detail(err: Optional[BaseException], detail: str) -> Optional[FaultlineError]:
    if err is None:
        return None
    return WithDetail(err, detail)


def with_detailf(err: Optional[BaseException], fmt: str, *args) -> Optional[FaultlineError]:
    return with_detail(err, _format(fmt, args))


def with_domain(err: Optional[BaseException], domain: Domain) -> Optional[FaultlineError]:
    if err is None:
        return None
    return WithDomain(err, domain)


def mark(err: Optional[BaseException], reference: BaseException) -> Optional[FaultlineError]:
    """Associate ``err`` with the sentinel ``reference`` (see ``is_``)."""
    if err is None:
        return None
    return WithMark(err, reference)


def with_telemetry(err: Optional[BaseException], *keys: str) -> Optional[FaultlineError]:
    if err is None:
        return None
    return WithTelemetry(err, tuple(keys))


# ---- Traversal ----


def iter_chain(err: Optional[BaseException]) -> Iterator[BaseException]:
    """Yield ``err`` and its causes, outermost first."""
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        err = err.__cause__


def unwrap_once(err: Optional[BaseException]) -> Optional[BaseException]:
    return err.__cause__ if err is not None else None


def unwrap_all(err: Optional[BaseException]) -> Optional[BaseException]:
    root = None
    for node in iter_chain(err):
        root = node
    return root


def is_(err: Optional[BaseException], reference: BaseException) -> bool:
    """Report whether ``reference`` is in the chain or marked onto it."""
    for node in iter_chain(err):
        if node is reference:
            return True
        if isinstance(node, WithMark) and node.reference is reference:
            return True
    return False


def find(err: Optional[BaseException], exc_type: Type[E]) -> Optional[E]:
    for node in iter_chain(err):
        if isinstance(node, exc_type):
            return node
    return None


# ---- Read-back ----


def get_all_hints(err: Optional[BaseException]) -> list[str]:
    hints: list[str] = []
    for node in reversed(list(iter_chain(err))):
        if isinstance(node, WithHint) and node.hint not in hints:
            hints.append(node.hint)
    return hints


def get_all_details(err: Optional[BaseException]) -> list[str]:
    return [
        node.detail
        for node in reversed(list(iter_chain(err)))
        if isinstance(node, WithDetail)
    ]


def get_domain(err: Optional[BaseException]) -> Domain:
    """Return the outermost (most recently attached) domain, or NO_DOMAIN."""
    for node in iter_chain(err):
        if isinstance(node, WithDomain):
            return node.domain
    return NO_DOMAIN


def get_telemetry_keys(err: Optional[BaseException]) -> list[str]:
    keys: set[str] = set()
    for node in iter_chain(err):
        if isinstance(node, WithTelemetry):
            keys.update(node.keys)
    return sorted(keys)


def _node_stack(node: BaseException) -> Optional[traceback.StackSummary]:
    stack = getattr(node, "stack", None)
    if stack:
        return stack
    if not isinstance(node, Wrapper) and node.__traceback__ is not None:
        return traceback.extract_tb(node.__traceback__)
    return None


def get_one_line_source(err: Optional[BaseException]) -> Optional[SourceLocation]:
    """Location of the innermost captured frame in the chain, if any."""
    location = None
    for node in iter_chain(err):
        stack = _node_stack(node)
        if stack:
            frame = stack[-1]
            location = SourceLocation(frame.filename, frame.lineno, frame.name)
    return location


def format_verbose(err: Optional[BaseException]) -> str:
    if err is None:
        return "<nil>"
    nodes = list(iter_chain(err))
    lines = [str(err)]
    for depth, node in enumerate(nodes, start=1):
        if isinstance(node, FaultlineError):
            lines.append(f"({depth}) {node.describe()}")
        else:
            lines.append(f"({depth}) {type(node).__name__}: {node}")
        for frame in _node_stack(node) or ():
            lines.append(f"  | {frame.filename}:{frame.lineno} in {frame.name}")
    lines.append(
        "Error types: "
        + " ".join(
            f"({depth}) {type(node).__module__}.{type(node).__qualname__}"
            for depth, node in enumerate(nodes, start=1)
        )
    )
    return "\n".join(lines)
