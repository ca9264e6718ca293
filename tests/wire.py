"""Builders for compact reply structures as redis-py hands them back."""

from __future__ import annotations

from typing import Any, List, Sequence, Tuple

NULL, STRING, INTEGER, BOOLEAN, DOUBLE, ARRAY, EDGE, NODE, PATH, MAP, POINT, VECTORF32 = range(1, 13)


def null() -> List[Any]:
    return [NULL, None]


def string(value: str) -> List[Any]:
    return [STRING, value.encode("utf-8")]


def integer(value: int) -> List[Any]:
    return [INTEGER, value]


def double(value: float) -> List[Any]:
    # RESP2 carries doubles as bulk strings.
    return [DOUBLE, repr(value).encode("ascii")]


def boolean(value: bool) -> List[Any]:
    return [BOOLEAN, b"true" if value else b"false"]


def array(*items: List[Any]) -> List[Any]:
    return [ARRAY, list(items)]


def mapping(*pairs: Tuple[str, List[Any]]) -> List[Any]:
    flat: List[Any] = []
    for key, value in pairs:
        flat.extend([key.encode("utf-8"), value])
    return [MAP, flat]


def point(latitude: float, longitude: float) -> List[Any]:
    return [POINT, [repr(latitude).encode("ascii"), repr(longitude).encode("ascii")]]


def _props(props: Sequence[Tuple[int, List[Any]]]) -> List[Any]:
    return [[key_id, value[0], value[1]] for key_id, value in props]


def node(node_id: int, label_ids: Sequence[int] = (), props: Sequence[Tuple[int, List[Any]]] = ()) -> List[Any]:
    return [NODE, [node_id, list(label_ids), _props(props)]]


def edge(
    edge_id: int,
    type_id: int,
    src: int,
    dst: int,
    props: Sequence[Tuple[int, List[Any]]] = (),
) -> List[Any]:
    return [EDGE, [edge_id, type_id, src, dst, _props(props)]]


def path(nodes: Sequence[List[Any]], edges: Sequence[List[Any]]) -> List[Any]:
    return [PATH, [array(*nodes), array(*edges)]]


def header(*names: str) -> List[Any]:
    return [[1, name.encode("utf-8")] for name in names]


DEFAULT_STATS = [b"Cached execution: 0", b"Query internal execution time: 0.213 milliseconds"]


def reply(names: Sequence[str], rows: Sequence[Sequence[List[Any]]], stats: Sequence[bytes] = DEFAULT_STATS) -> List[Any]:
    return [header(*names), [list(row) for row in rows], list(stats)]


def names_reply(names: Sequence[str]) -> List[Any]:
    """Reply to ``CALL db.labels()`` and friends: one string column."""
    return reply(["name"], [[string(name)] for name in names])
