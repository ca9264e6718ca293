"""Error family raised by the falkorgraph client."""

from __future__ import annotations

import re
from typing import Any, Awaitable, Callable, Dict, Optional, Type

from redis import exceptions as redis_exceptions

# Server error text announcing that the client's schema dictionaries are stale.
_VERSION_MISMATCH_REGEX = re.compile(r"^\s*version mismatch", re.IGNORECASE)


class ErrorCode:
    """Error codes attached to every falkorgraph exception."""
    UNKNOWN = "UNKNOWN"
    TRANSPORT = "TRANSPORT"
    QUERY_RUNTIME = "QUERY_RUNTIME"
    SCHEMA_VERSION_MISMATCH = "SCHEMA_VERSION_MISMATCH"
    ENCODING = "ENCODING"
    PROTOCOL = "PROTOCOL"


class FalkorError(Exception):
    """Base exception class for all falkorgraph errors."""

    def __init__(self, message: str, code: str = ErrorCode.UNKNOWN):
        super().__init__(message)
        self.code = code


class TransportError(FalkorError):
    """Error raised when the connection to the server fails."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.TRANSPORT)


class QueryRuntimeError(FalkorError):
    """Error raised when the server reports a failure while running a query."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.QUERY_RUNTIME)


class SchemaVersionMismatchError(FalkorError):
    """Error raised when the cached schema dictionaries are out of date with the server."""

    def __init__(self, message: str = "version mismatch", version: Optional[int] = None):
        super().__init__(message, ErrorCode.SCHEMA_VERSION_MISMATCH)
        self.version = version


class EncodingError(FalkorError, ValueError):
    """Error raised when a parameter value cannot be rendered as a query literal."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.ENCODING)


class ProtocolError(FalkorError):
    """Error raised when a reply does not have the shape the decoder expects."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.PROTOCOL)


# Map of error code strings to their corresponding exception classes
_ERROR_CLASS_MAP: Dict[str, Type[FalkorError]] = {
    ErrorCode.TRANSPORT: TransportError,
    ErrorCode.QUERY_RUNTIME: QueryRuntimeError,
    ErrorCode.SCHEMA_VERSION_MISMATCH: SchemaVersionMismatchError,
    ErrorCode.ENCODING: EncodingError,
    ErrorCode.PROTOCOL: ProtocolError,
}


def error_for_code(code: str, message: str) -> FalkorError:
    """Build the exception registered for ``code`` (``FalkorError`` when unknown)."""
    error_class = _ERROR_CLASS_MAP.get(code)
    if error_class is None:
        return FalkorError(message, code if code else ErrorCode.UNKNOWN)
    return error_class(message)


def is_version_mismatch(message: str) -> bool:
    return bool(_VERSION_MISMATCH_REGEX.match(message))


def error_from_reply(element: BaseException) -> FalkorError:
    """Convert an error element found inside a reply into a typed exception."""
    message = str(element)
    if is_version_mismatch(message):
        return SchemaVersionMismatchError(message)
    return QueryRuntimeError(message)


def wrap_transport_error(err: BaseException) -> FalkorError:
    """Map an exception raised by the redis client to a typed exception.

    Server replies (``ResponseError``) become ``QueryRuntimeError`` unless they
    carry the version-mismatch signal. Connection, timeout and other client
    failures become ``TransportError``.

    Args:
        err: The exception raised while executing a command

    Returns:
        A typed FalkorError subclass instance
    """
    if isinstance(err, FalkorError):
        return err
    if isinstance(err, redis_exceptions.ResponseError):
        return error_from_reply(err)
    if isinstance(err, redis_exceptions.RedisError):
        return TransportError(str(err) or type(err).__name__)
    return FalkorError(str(err), ErrorCode.UNKNOWN)


def call_transport(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Invoke a transport function and re-raise with typed errors."""
    try:
        return fn(*args, **kwargs)
    except redis_exceptions.RedisError as err:
        raise wrap_transport_error(err) from err


async def call_transport_async(fn: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
    """Await a transport coroutine and re-raise with typed errors."""
    try:
        return await fn(*args, **kwargs)
    except redis_exceptions.RedisError as err:
        raise wrap_transport_error(err) from err
