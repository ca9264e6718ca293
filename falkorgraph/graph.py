"""Graph handle: runs queries and owns the graph's schema dictionaries."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from typing_extensions import Protocol, TypedDict

from .decoder import ReplyDecoder, to_str
from .errors import FalkorError, ProtocolError, SchemaVersionMismatchError, call_transport
from .params import _ensure_identifier, encode_parameter, prepare_query
from .result import ResultSet
from .schema import DictionaryFetcher, DictionaryKind, SchemaCache

LOG = logging.getLogger(__name__)


class Command:
    """Server commands used by the graph handle."""
    QUERY = "GRAPH.QUERY"
    RO_QUERY = "GRAPH.RO_QUERY"
    DELETE = "GRAPH.DELETE"
    COPY = "GRAPH.COPY"
    EXPLAIN = "GRAPH.EXPLAIN"
    PROFILE = "GRAPH.PROFILE"
    SLOWLOG = "GRAPH.SLOWLOG"
    LIST = "GRAPH.LIST"


COMPACT_FLAG = "--compact"


class Transport(Protocol):
    """What the graph needs from a connection; ``redis.Redis`` satisfies it."""

    def execute_command(self, *args: Any, **options: Any) -> Any:
        ...


class SlowlogEntry(TypedDict):
    timestamp: int
    command: str
    query: str
    duration: float


class QueryState(Enum):
    SENT = "sent"
    SUCCESS = "success"
    SCHEMA_STALE = "schema_stale"
    QUERY_FAILED = "query_failed"


class Attempt(Enum):
    FIRST = "first"
    RETRY = "retry"


Outcome = Tuple[QueryState, Union[ResultSet, FalkorError]]


class GraphBase:
    """Command building and reply handling shared by the sync and async graphs."""

    def __init__(self, connection: Any, graph_id: str, fetch: DictionaryFetcher):
        if not isinstance(graph_id, str) or not graph_id:
            raise ValueError("graph id must be a non-empty string")
        self._connection = connection
        self._graph_id = graph_id
        self._schema = SchemaCache(fetch)

    @property
    def name(self) -> str:
        return self._graph_id

    @property
    def schema(self) -> SchemaCache:
        return self._schema

    @property
    def connection(self) -> Any:
        return self._connection

    @staticmethod
    def _check_clone_id(clone_id: str) -> None:
        if not isinstance(clone_id, str) or not clone_id:
            raise ValueError("clone graph id must be a non-empty string")

    def _query_args(
        self, q: str, params: Optional[Mapping[str, Any]], timeout: Optional[int]
    ) -> List[Any]:
        # Encoding errors surface here, before anything is sent.
        args: List[Any] = [self._graph_id, prepare_query(q, params), COMPACT_FLAG]
        if timeout is not None:
            if not isinstance(timeout, int) or isinstance(timeout, bool) or timeout < 0:
                raise ValueError("timeout must be a non-negative integer number of milliseconds")
            args.extend(["timeout", timeout])
        return args

    @staticmethod
    def _procedure_query(procedure: str, args: Sequence[Any], yields: Optional[Sequence[str]]) -> str:
        if not isinstance(procedure, str) or not procedure.strip():
            raise ValueError("procedure name must be a non-empty string")
        q = f"CALL {procedure}({','.join(encode_parameter(arg) for arg in args)})"
        if yields:
            q += " YIELD " + ",".join(_ensure_identifier(name, "yield column") for name in yields)
        return q

    def _settle(self, attempt: Attempt, state: QueryState, outcome: Any) -> Optional[ResultSet]:
        """Return the result, or None when the attempt should be repeated."""
        if state is QueryState.SUCCESS:
            return outcome
        if state is QueryState.SCHEMA_STALE and attempt is Attempt.FIRST:
            LOG.warning(
                "Schema of graph %s is out of date; refreshing and retrying once", self._graph_id
            )
            self._schema.invalidate()
            return None
        raise outcome

    @staticmethod
    def _slowlog_entries(reply: Any) -> List[SlowlogEntry]:
        entries: List[SlowlogEntry] = []
        for raw in reply or []:
            if not isinstance(raw, (list, tuple)) or len(raw) != 4:
                raise ProtocolError("slowlog entry must have 4 elements")
            entries.append(
                {
                    "timestamp": int(raw[0]),
                    "command": to_str(raw[1]),
                    "query": to_str(raw[2]),
                    "duration": float(raw[3]),
                }
            )
        return entries

    @staticmethod
    def _plan_lines(reply: Any) -> List[str]:
        if not isinstance(reply, (list, tuple)):
            raise ProtocolError("execution plan must be an array of lines")
        return [to_str(line) for line in reply]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._graph_id!r})"


class Graph(GraphBase):
    """A named graph on the server.

    A Graph may be shared between threads; its only shared state is the
    schema dictionary cache, which guards itself.
    """

    def __init__(self, connection: Transport, graph_id: str):
        super().__init__(connection, graph_id, self._fetch_dictionary)
        self._decoder = ReplyDecoder(self._schema)

    def query(
        self,
        q: str,
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[int] = None,
    ) -> ResultSet:
        """Run a query, retrying once if the server reports a stale schema.

        Args:
            q: Cypher query text; parameters are referenced as ``$name``
            params: Parameter values, rendered into the query as literals
            timeout: Server-side timeout in milliseconds

        Returns:
            The decoded ResultSet
        """
        return self._run(Command.QUERY, self._query_args(q, params, timeout))

    def ro_query(
        self,
        q: str,
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[int] = None,
    ) -> ResultSet:
        """Run a read-only query (may be served by a replica)."""
        return self._run(Command.RO_QUERY, self._query_args(q, params, timeout))

    def call_procedure(
        self,
        procedure: str,
        *args: Any,
        read_only: bool = False,
        yields: Optional[Sequence[str]] = None,
    ) -> ResultSet:
        q = self._procedure_query(procedure, args, yields)
        if read_only:
            return self.ro_query(q)
        return self.query(q)

    def delete(self) -> ResultSet:
        """Delete the graph and forget its cached schema."""
        reply = self._execute(Command.DELETE, self._graph_id)
        self._schema.invalidate()
        return ResultSet(reply)

    def copy(self, clone_id: str) -> "Graph":
        self._check_clone_id(clone_id)
        self._execute(Command.COPY, self._graph_id, clone_id)
        return Graph(self._connection, clone_id)

    def explain(self, q: str, params: Optional[Mapping[str, Any]] = None) -> List[str]:
        """Return the execution plan of a query without running it."""
        reply = self._execute(Command.EXPLAIN, self._graph_id, prepare_query(q, params))
        return self._plan_lines(reply)

    def profile(self, q: str, params: Optional[Mapping[str, Any]] = None) -> List[str]:
        """Run a query and return its plan annotated with per-operation timings."""
        reply = self._execute(Command.PROFILE, self._graph_id, prepare_query(q, params))
        return self._plan_lines(reply)

    def slowlog(self) -> List[SlowlogEntry]:
        return self._slowlog_entries(self._execute(Command.SLOWLOG, self._graph_id))

    def slowlog_reset(self) -> None:
        self._execute(Command.SLOWLOG, self._graph_id, "RESET")

    def _run(self, command: str, args: Sequence[Any]) -> ResultSet:
        for attempt in (Attempt.FIRST, Attempt.RETRY):
            result = self._settle(attempt, *self._attempt(command, args))
            if result is not None:
                return result
        raise AssertionError("unreachable")

    def _attempt(self, command: str, args: Sequence[Any]) -> Outcome:
        state = QueryState.SENT
        LOG.debug("%s %s (state=%s)", command, self._graph_id, state.value)
        try:
            reply = self._execute(command, *args)
            return QueryState.SUCCESS, ResultSet(reply, self._decoder)
        except SchemaVersionMismatchError as err:
            return QueryState.SCHEMA_STALE, err
        except FalkorError as err:
            return QueryState.QUERY_FAILED, err

    def _execute(self, command: str, *args: Any) -> Any:
        return call_transport(self._connection.execute_command, command, *args)

    def _fetch_dictionary(self, kind: DictionaryKind) -> List[str]:
        # Sent once, outside the retry loop: a refresh runs while the
        # dictionary lock is held and must not re-enter invalidate().
        q = self._procedure_query(kind.procedure, (), None)
        reply = self._execute(Command.RO_QUERY, self._graph_id, q, COMPACT_FLAG)
        result = ResultSet(reply, self._decoder)
        return [record.get_string(0) for record in result]
