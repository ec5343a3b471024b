"""Exception hierarchy for the Reddit fetch client.

Every error raised by the package derives from ``RedditClientError``. Underlying
causes are chained with ``raise ... from`` so callers can ask questions such as
"was this a cancellation?" with ``find_cause`` instead of matching strings.
"""

from typing import Any, List, Optional, Sequence, Type, TypeVar

E = TypeVar("E", bound=BaseException)


class RedditClientError(Exception):
    """Base class for all client errors.

    Args:
        message: Human readable description of the failure
        operation: Name of the operation that failed, used as a message prefix
    """

    def __init__(self, message: str, operation: Optional[str] = None):
        self.message = message
        self.operation = operation
        super().__init__(message)

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class ConfigError(RedditClientError):
    """Invalid client configuration, detected at construction time."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        if field:
            message = f"config error in field {field}: {message}"
        else:
            message = f"config error: {message}"
        super().__init__(message)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class ParseError(RedditClientError):
    """Base class for failures turning an envelope into a domain object."""

    def __init__(
        self,
        message: str,
        kind: Optional[str] = None,
        field: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        self.kind = kind
        self.field = field
        super().__init__(message, operation=operation)


class NilInputError(ParseError):
    """A parser entry point received ``None`` instead of an envelope."""

    def __init__(self, what: str = "envelope", operation: Optional[str] = None):
        super().__init__(f"nil input: {what} is None", operation=operation)


class UnknownKindError(ParseError):
    """The envelope kind is outside the known vocabulary."""

    def __init__(self, kind: Any):
        super().__init__(f"unknown kind: {kind}", kind=str(kind))


class KindMismatchError(ParseError):
    """The envelope kind differs from the kind the caller asked for."""

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"kind mismatch: expected {expected}, got {actual}", kind=actual)


class DecodeError(ParseError):
    """Malformed payload: bad JSON, wrong JSON type, missing or invalid field."""

    def __init__(self, message: str, kind: Optional[str] = None, field: Optional[str] = None):
        prefix = "decode error"
        if kind and field:
            prefix = f"decode error in {kind}.{field}"
        elif kind:
            prefix = f"decode error in {kind}"
        elif field:
            prefix = f"decode error in {field}"
        super().__init__(f"{prefix}: {message}", kind=kind, field=field)


class ListingChildError(ParseError):
    """A listing child failed to parse; the whole listing is rejected."""

    def __init__(self, index: int, cause: BaseException):
        self.index = index
        super().__init__(
            f"listing child at index {index} failed: {cause}",
            kind=getattr(cause, "kind", None),
            field=getattr(cause, "field", None),
        )


class ResponseParseError(ParseError):
    """A transport response could not be turned into the expected result."""

    def __init__(self, operation: str, cause: BaseException):
        super().__init__(
            f"failed to parse response: {cause}",
            kind=getattr(cause, "kind", None),
            field=getattr(cause, "field", None),
            operation=operation,
        )


# ---------------------------------------------------------------------------
# Requests and transport
# ---------------------------------------------------------------------------


class ValidationError(RedditClientError):
    """A request field failed its format check before any network call."""

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"invalid {field} {value!r}: {reason}", operation="validate")


class TransportError(RedditClientError):
    """Network failure or non-success HTTP status."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        operation: Optional[str] = None,
        headers: Optional[dict] = None,
    ):
        self.status = status
        self.headers = headers or {}
        if status is not None:
            message = f"status {status}: {message}"
        super().__init__(message, operation=operation)


class AuthenticationError(RedditClientError):
    """The credential provider or the service rejected our credentials."""

    def __init__(self, message: str, status: Optional[int] = None, operation: Optional[str] = None):
        self.status = status
        if status is not None:
            message = f"status {status}: {message}"
        super().__init__(f"auth error: {message}", operation=operation)


# ---------------------------------------------------------------------------
# Multi-fetch
# ---------------------------------------------------------------------------


class FetchCancelledError(RedditClientError):
    """The shared cancellation signal of a multi-fetch call was set."""

    def __init__(self, message: str = "fetch cancelled", operation: Optional[str] = "fetch_many", partial: Any = None):
        self.partial = partial
        super().__init__(message, operation=operation)


class FetchTimeoutError(RedditClientError, TimeoutError):
    """The deadline of a multi-fetch call elapsed."""

    def __init__(self, timeout: Optional[float], operation: Optional[str] = "fetch_many", partial: Any = None):
        self.timeout = timeout
        self.partial = partial
        message = "deadline exceeded" if timeout is None else f"deadline of {timeout:.2f}s exceeded"
        super().__init__(message, operation=operation)


class FetchAbortedError(RedditClientError):
    """An item was never attempted because fail-fast stopped admission."""

    def __init__(self, index: int):
        self.index = index
        super().__init__(
            f"request at index {index} not attempted after an earlier failure",
            operation="fetch_many",
        )


class AggregateFetchError(RedditClientError):
    """One or more items of a multi-fetch call failed.

    Args:
        errors: Per-item errors aligned with the request list (``None`` for successes)
    """

    def __init__(self, errors: Sequence[Optional[BaseException]]):
        self.errors: List[Optional[BaseException]] = list(errors)
        self.failed_indexes = [i for i, err in enumerate(self.errors) if err is not None]
        first = self.first_error
        message = f"{len(self.failed_indexes)} of {len(self.errors)} requests failed"
        if first is not None:
            message += f"; first at index {self.failed_indexes[0]}: {first}"
        super().__init__(message, operation="fetch_many")

    @property
    def first_error(self) -> Optional[BaseException]:
        for err in self.errors:
            if err is not None:
                return err
        return None


def find_cause(exc: Optional[BaseException], error_type: Type[E]) -> Optional[E]:
    """
    Walk the ``__cause__``/``__context__`` chain of an exception.

    Args:
        exc: Exception to inspect (may be ``None``)
        error_type: Exception class to look for

    Returns:
        The first exception in the chain that is an instance of ``error_type``,
        or ``None`` if there is none
    """
    seen = set()
    while exc is not None and id(exc) not in seen:
        if isinstance(exc, error_type):
            return exc
        seen.add(id(exc))
        exc = exc.__cause__ or exc.__context__
    return None
