"""Asyncio client and graph handle, built on ``redis.asyncio``.

The async graph decodes replies exactly like :class:`falkorgraph.Graph`. The
one difference is where dictionary fetches happen: the ids a reply refers to
are collected first, missing dictionaries are fetched with ``await`` outside
any thread lock, and only then is the reply decoded, so decoding never blocks
the event loop on the network.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

import redis.asyncio as redis_asyncio

from .client import ClientBase
from .decoder import ReplyDecoder, scan_for_errors, schema_ids, to_str
from .errors import FalkorError, SchemaVersionMismatchError, call_transport_async
from .graph import COMPACT_FLAG, Attempt, Command, GraphBase, Outcome, QueryState, SlowlogEntry
from .params import prepare_query
from .result import ResultSet
from .schema import DictionaryKind, SchemaCache

LOG = logging.getLogger(__name__)


def _no_names(kind: DictionaryKind) -> List[str]:
    return []


class AsyncGraph(GraphBase):
    """A named graph used from asyncio tasks.

    Many tasks may share one AsyncGraph; concurrent fetches of the same
    dictionary are collapsed into one request.
    """

    def __init__(self, connection: Any, graph_id: str):
        super().__init__(connection, graph_id, self._cached_names)
        self._fetch_locks: Dict[DictionaryKind, asyncio.Lock] = {}
        # Dictionary replies are plain string columns and never consult a schema.
        self._names_decoder = ReplyDecoder(SchemaCache(_no_names))

    async def query(
        self,
        q: str,
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[int] = None,
    ) -> ResultSet:
        """Run a query, retrying once if the server reports a stale schema."""
        return await self._run(Command.QUERY, self._query_args(q, params, timeout))

    async def ro_query(
        self,
        q: str,
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[int] = None,
    ) -> ResultSet:
        return await self._run(Command.RO_QUERY, self._query_args(q, params, timeout))

    async def call_procedure(
        self,
        procedure: str,
        *args: Any,
        read_only: bool = False,
        yields: Optional[Sequence[str]] = None,
    ) -> ResultSet:
        q = self._procedure_query(procedure, args, yields)
        if read_only:
            return await self.ro_query(q)
        return await self.query(q)

    async def delete(self) -> ResultSet:
        reply = await self._execute(Command.DELETE, self._graph_id)
        self._schema.invalidate()
        return ResultSet(reply)

    async def copy(self, clone_id: str) -> "AsyncGraph":
        self._check_clone_id(clone_id)
        await self._execute(Command.COPY, self._graph_id, clone_id)
        return AsyncGraph(self._connection, clone_id)

    async def explain(self, q: str, params: Optional[Mapping[str, Any]] = None) -> List[str]:
        reply = await self._execute(Command.EXPLAIN, self._graph_id, prepare_query(q, params))
        return self._plan_lines(reply)

    async def profile(self, q: str, params: Optional[Mapping[str, Any]] = None) -> List[str]:
        reply = await self._execute(Command.PROFILE, self._graph_id, prepare_query(q, params))
        return self._plan_lines(reply)

    async def slowlog(self) -> List[SlowlogEntry]:
        return self._slowlog_entries(await self._execute(Command.SLOWLOG, self._graph_id))

    async def slowlog_reset(self) -> None:
        await self._execute(Command.SLOWLOG, self._graph_id, "RESET")

    async def _run(self, command: str, args: Sequence[Any]) -> ResultSet:
        for attempt in (Attempt.FIRST, Attempt.RETRY):
            state, outcome = await self._attempt(command, args)
            result = self._settle(attempt, state, outcome)
            if result is not None:
                return result
        raise AssertionError("unreachable")

    async def _attempt(self, command: str, args: Sequence[Any]) -> Outcome:
        state = QueryState.SENT
        LOG.debug("%s %s (state=%s)", command, self._graph_id, state.value)
        try:
            reply = await self._execute(command, *args)
            scan_for_errors(reply)
            decoder = await self._decoder_for(reply)
            return QueryState.SUCCESS, ResultSet(reply, decoder)
        except SchemaVersionMismatchError as err:
            return QueryState.SCHEMA_STALE, err
        except FalkorError as err:
            return QueryState.QUERY_FAILED, err

    async def _decoder_for(self, reply: Any) -> ReplyDecoder:
        rows = reply[1] if isinstance(reply, (list, tuple)) and len(reply) == 3 else ()
        tables: Dict[DictionaryKind, List[str]] = {}
        for kind, index in schema_ids(rows).items():
            names = self._schema.names(kind)
            if index >= len(names):
                names = await self._refresh(kind, index)
            tables[kind] = names
        # Decoding reads these tables, so a concurrent invalidate() cannot empty them midway.
        return ReplyDecoder(SchemaCache(lambda kind: tables.get(kind, [])))

    async def _refresh(self, kind: DictionaryKind, index: int) -> List[str]:
        lock = self._fetch_locks.get(kind)
        if lock is None:
            lock = self._fetch_locks[kind] = asyncio.Lock()
        async with lock:
            names = self._schema.names(kind)
            if index < len(names):
                return names
            return self._schema.replace(kind, await self._fetch_dictionary(kind))

    async def _fetch_dictionary(self, kind: DictionaryKind) -> List[str]:
        # Outside the retry loop, like the sync graph.
        q = self._procedure_query(kind.procedure, (), None)
        reply = await self._execute(Command.RO_QUERY, self._graph_id, q, COMPACT_FLAG)
        return [record.get_string(0) for record in ResultSet(reply, self._names_decoder)]

    def _cached_names(self, kind: DictionaryKind) -> List[str]:
        return self._schema.names(kind)

    async def _execute(self, command: str, *args: Any) -> Any:
        return await call_transport_async(self._connection.execute_command, command, *args)


class AsyncFalkorDB(ClientBase):
    """Asyncio client for a FalkorDB server; options go to ``redis.asyncio.Redis``."""

    redis_class = redis_asyncio.Redis
    graph_class = AsyncGraph

    def select_graph(self, graph_id: str) -> AsyncGraph:
        return super().select_graph(graph_id)

    async def list_graphs(self) -> List[str]:
        self._assert_open()
        reply = await call_transport_async(self._connection.execute_command, Command.LIST)
        return [to_str(name) for name in reply or []]

    async def close(self) -> None:
        if not self._mark_closed():
            return
        close = getattr(self._connection, "aclose", None) or getattr(self._connection, "close", None)
        if callable(close):
            await close()

    async def __aenter__(self) -> "AsyncFalkorDB":
        self._assert_open()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
