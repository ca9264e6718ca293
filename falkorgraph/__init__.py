"""Python client for FalkorDB compact graph replies."""

from .aio import AsyncFalkorDB, AsyncGraph
from .client import FalkorDB, connect
from .decoder import ReplyDecoder, ValueType
from .entities import Edge, GraphEntity, Node, Path, PathBuilder, Point
from .errors import (
    ErrorCode,
    FalkorError,
    TransportError,
    QueryRuntimeError,
    SchemaVersionMismatchError,
    EncodingError,
    ProtocolError,
    wrap_transport_error,
)
from .graph import Graph, QueryState
from .params import encode_parameter, prepare_query, quote_string
from .result import Header, Record, ResultSet, Statistics
from .schema import DictionaryKind, SchemaCache

__version__ = "0.1.0"

__all__ = [
    "version",
    "FalkorDB",
    "connect",
    "Graph",
    "AsyncFalkorDB",
    "AsyncGraph",
    "QueryState",
    "ResultSet",
    "Record",
    "Header",
    "Statistics",
    "GraphEntity",
    "Node",
    "Edge",
    "Path",
    "PathBuilder",
    "Point",
    "ReplyDecoder",
    "ValueType",
    "SchemaCache",
    "DictionaryKind",
    "encode_parameter",
    "prepare_query",
    "quote_string",
    # Error types
    "ErrorCode",
    "FalkorError",
    "TransportError",
    "QueryRuntimeError",
    "SchemaVersionMismatchError",
    "EncodingError",
    "ProtocolError",
    "wrap_transport_error",
]


def version() -> str:
    """Return the package version string."""
    return __version__
