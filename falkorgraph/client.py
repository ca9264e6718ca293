"""Connection entry point."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

import redis

from .decoder import to_str
from .errors import call_transport
from .graph import Command, Graph, Transport

LOG = logging.getLogger(__name__)


class ClientBase:
    """Connection ownership shared by the sync and async clients.

    Connection options are forwarded to the redis client class; an existing
    connection (anything with ``execute_command``) can be passed instead.
    """

    redis_class: Any = redis.Redis
    graph_class: Any = Graph

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        password: Optional[str] = None,
        *,
        connection: Optional[Any] = None,
        **connection_options: Any,
    ) -> None:
        if connection is not None:
            if connection_options:
                raise TypeError("connect options are not allowed when wrapping an existing connection")
            self._connection = connection
            self._owns_connection = False
        else:
            self._connection = self.redis_class(host=host, port=port, password=password, **connection_options)
            self._owns_connection = True
            LOG.debug("Opened connection to %s:%s", host, port)
        self._closed = False

    @classmethod
    def from_url(cls, url: str, **connection_options: Any) -> Any:
        """Connect using a ``redis://`` / ``rediss://`` / ``unix://`` URL."""
        client = cls(connection=cls.redis_class.from_url(url, **connection_options))
        client._owns_connection = True
        return client

    @property
    def connection(self) -> Any:
        return self._connection

    def select_graph(self, graph_id: str) -> Any:
        self._assert_open()
        return self.graph_class(self._connection, graph_id)

    def is_closed(self) -> bool:
        return self._closed

    def _assert_open(self) -> None:
        if self._closed:
            raise RuntimeError("client is closed")

    def _mark_closed(self) -> bool:
        """Flag the client closed; True when the caller should close the connection."""
        if self._closed:
            return False
        self._closed = True
        return self._owns_connection


class FalkorDB(ClientBase):
    """Client for a FalkorDB server."""

    @property
    def connection(self) -> Transport:
        return self._connection

    def select_graph(self, graph_id: str) -> Graph:
        return super().select_graph(graph_id)

    def list_graphs(self) -> List[str]:
        self._assert_open()
        reply = call_transport(self._connection.execute_command, Command.LIST)
        return [to_str(name) for name in reply or []]

    def close(self) -> None:
        close = getattr(self._connection, "close", None)
        if self._mark_closed() and callable(close):
            close()

    def __enter__(self) -> "FalkorDB":
        self._assert_open()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def connect(host: str = "localhost", port: int = 6379, password: Optional[str] = None, **options: Any) -> FalkorDB:
    return FalkorDB(host, port, password, **options)
