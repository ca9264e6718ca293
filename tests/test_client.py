import pytest

from falkorgraph import FalkorDB, Graph, connect


class ClosingConnection:
    def __init__(self, replies=()):
        self.replies = list(replies)
        self.calls = []
        self.closed = False

    def execute_command(self, *args, **options):
        self.calls.append(args)
        return self.replies.pop(0)

    def close(self):
        self.closed = True


def test_select_graph_wraps_connection():
    conn = ClosingConnection()
    client = FalkorDB(connection=conn)
    graph = client.select_graph("social")
    assert isinstance(graph, Graph)
    assert graph.name == "social"
    assert graph.connection is conn


def test_connection_and_options_are_exclusive():
    with pytest.raises(TypeError):
        FalkorDB(connection=ClosingConnection(), socket_timeout=1)


def test_options_build_a_lazy_redis_client():
    # redis.Redis connects on first command, so nothing is dialled here.
    client = connect("localhost", 6390, socket_timeout=2)
    pool = client.connection.connection_pool
    assert pool.connection_kwargs["port"] == 6390
    assert pool.connection_kwargs["socket_timeout"] == 2
    client.close()


def test_from_url():
    client = FalkorDB.from_url("redis://localhost:6390/0")
    assert client.connection.connection_pool.connection_kwargs["port"] == 6390
    client.close()


def test_list_graphs():
    conn = ClosingConnection([[b"social", b"movies"]])
    client = FalkorDB(connection=conn)
    assert client.list_graphs() == ["social", "movies"]
    assert conn.calls == [("GRAPH.LIST",)]


def test_close_leaves_borrowed_connection_open():
    conn = ClosingConnection()
    client = FalkorDB(connection=conn)
    client.close()
    assert client.is_closed()
    assert not conn.closed
    with pytest.raises(RuntimeError):
        client.select_graph("social")


def test_context_manager_closes_client():
    with FalkorDB(connection=ClosingConnection()) as client:
        assert not client.is_closed()
    assert client.is_closed()
