from __future__ import annotations

import asyncio
import os
import threading
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Sequence

import pytest

from wire import names_reply

_PROCEDURES = ("db.labels", "db.propertyKeys", "db.relationshipTypes")


class FakeConnection:
    """Scripted stand-in for ``redis.Redis``.

    Schema procedure calls are answered from ``dictionaries``; every other
    command pops the next scripted reply (an exception instance is raised).
    """

    def __init__(
        self,
        labels: Sequence[str] = (),
        property_keys: Sequence[str] = (),
        relationship_types: Sequence[str] = (),
    ) -> None:
        self.dictionaries: Dict[str, List[str]] = {
            "db.labels": list(labels),
            "db.propertyKeys": list(property_keys),
            "db.relationshipTypes": list(relationship_types),
        }
        self.replies: Deque[Any] = deque()
        self.calls: List[tuple] = []
        self._lock = threading.Lock()

    def push(self, *replies: Any) -> "FakeConnection":
        self.replies.extend(replies)
        return self

    def execute_command(self, *args: Any, **options: Any) -> Any:
        with self._lock:
            self.calls.append(args)
            procedure = self._procedure(args)
            if procedure is not None:
                return names_reply(self.dictionaries[procedure])
            if not self.replies:
                raise AssertionError(f"unexpected command {args!r}")
            reply = self.replies.popleft()
        if isinstance(reply, BaseException):
            raise reply
        return reply

    @staticmethod
    def _procedure(args: Sequence[Any]) -> Optional[str]:
        if len(args) < 3 or args[0] not in ("GRAPH.QUERY", "GRAPH.RO_QUERY"):
            return None
        for procedure in _PROCEDURES:
            if args[2] == f"CALL {procedure}()":
                return procedure
        return None

    def metadata_calls(self, procedure: Optional[str] = None) -> List[tuple]:
        found = []
        for call in self.calls:
            name = self._procedure(call)
            if name is not None and (procedure is None or name == procedure):
                found.append(call)
        return found

    def query_calls(self) -> List[tuple]:
        return [call for call in self.calls if self._procedure(call) is None]


class AsyncFakeConnection(FakeConnection):
    """Awaitable twin of FakeConnection, shaped like ``redis.asyncio.Redis``."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.closed = False

    async def execute_command(self, *args: Any, **options: Any) -> Any:  # type: ignore[override]
        # Yield once so concurrent tasks interleave on every command.
        await asyncio.sleep(0)
        return FakeConnection.execute_command(self, *args, **options)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection(
        labels=["person", "worker"],
        property_keys=["name", "age", "since"],
        relationship_types=["knows", "worksWith"],
    )


@pytest.fixture
def async_connection() -> AsyncFakeConnection:
    return AsyncFakeConnection(
        labels=["person", "worker"],
        property_keys=["name", "age", "since"],
        relationship_types=["knows", "worksWith"],
    )


@pytest.fixture
def live_graph():
    """Graph on a real server; skipped unless FALKORDB_HOST is set."""
    host = os.environ.get("FALKORDB_HOST")
    if not host:
        pytest.skip("FALKORDB_HOST is not set")
    from falkorgraph import FalkorDB

    client = FalkorDB(host, int(os.environ.get("FALKORDB_PORT", "6379")))
    graph = client.select_graph("falkorgraph_test")
    yield graph
    try:
        graph.delete()
    except Exception:  # noqa: BLE001 - graph may never have been created
        pass
    client.close()
