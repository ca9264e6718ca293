"""Decoder for compact graph replies.

Every value in a compact reply is a ``[type, payload]`` pair. Nodes and edges
refer to labels, property keys and relationship types by integer id; those
ids are resolved through the graph's SchemaCache.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Callable, Dict, List, Sequence

from redis.exceptions import ResponseError

from .entities import Edge, GraphEntity, Node, Path, Point
from .errors import ProtocolError, error_from_reply
from .schema import DictionaryKind, SchemaCache


class ValueType(IntEnum):
    """Wire type tags, fixed by the server."""

    UNKNOWN = 0
    NULL = 1
    STRING = 2
    INTEGER = 3
    BOOLEAN = 4
    DOUBLE = 5
    ARRAY = 6
    EDGE = 7
    NODE = 8
    PATH = 9
    MAP = 10
    POINT = 11
    VECTORF32 = 12


def to_str(value: Any) -> str:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8")
    if isinstance(value, str):
        return value
    raise ProtocolError(f"expected a string in reply, got {type(value).__name__}")


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ProtocolError("expected an integer in reply, got a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, (bytes, bytearray, str)):
        try:
            return int(value)
        except ValueError:
            pass
    raise ProtocolError(f"expected an integer in reply, got {value!r}")


def _to_float(value: Any) -> float:
    if isinstance(value, float):
        return value
    if isinstance(value, (int, bytes, bytearray, str)) and not isinstance(value, bool):
        try:
            return float(value)
        except ValueError:
            pass
    raise ProtocolError(f"expected a double in reply, got {value!r}")


def _as_list(value: Any, ctx: str) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    raise ProtocolError(f"{ctx} must be an array, got {type(value).__name__}")


def scan_for_errors(reply: Any) -> None:
    """Raise the first error element found anywhere inside ``reply``."""
    if isinstance(reply, ResponseError):
        raise error_from_reply(reply)
    if isinstance(reply, (list, tuple)):
        for element in reply:
            scan_for_errors(element)


class ReplyDecoder:
    """Turns ``[type, payload]`` reply nodes into Python values."""

    def __init__(self, schema: SchemaCache):
        self._schema = schema
        self._handlers: Dict[ValueType, Callable[[Any], Any]] = {
            ValueType.NULL: self._decode_null,
            ValueType.STRING: to_str,
            ValueType.INTEGER: _to_int,
            ValueType.BOOLEAN: self._decode_boolean,
            ValueType.DOUBLE: _to_float,
            ValueType.ARRAY: self._decode_array,
            ValueType.EDGE: self.decode_edge,
            ValueType.NODE: self.decode_node,
            ValueType.PATH: self._decode_path,
            ValueType.MAP: self._decode_map,
            ValueType.POINT: self._decode_point,
            ValueType.VECTORF32: self._passthrough,
            ValueType.UNKNOWN: self._passthrough,
        }

    @property
    def schema(self) -> SchemaCache:
        return self._schema

    def decode_value(self, raw: Sequence[Any]) -> Any:
        """Decode one ``[type, payload]`` node."""
        pair = _as_list(raw, "value")
        if len(pair) != 2:
            raise ProtocolError(f"value must be a [type, payload] pair, got {len(pair)} elements")
        tag, payload = pair
        try:
            value_type = ValueType(_to_int(tag))
        except ValueError:
            # Unrecognised tags are handed back untouched.
            return payload
        return self._handlers[value_type](payload)

    def decode_row(self, raw_row: Sequence[Any]) -> List[Any]:
        return [self.decode_value(cell) for cell in _as_list(raw_row, "row")]

    def decode_node(self, payload: Any) -> Node:
        """Assemble a Node from ``[id, [label ids], [properties]]``."""
        parts = _as_list(payload, "node")
        if len(parts) != 3:
            raise ProtocolError(f"node payload must have 3 elements, got {len(parts)}")
        node = Node(_to_int(parts[0]))
        for label_index in _as_list(parts[1], "node labels"):
            node.add_label(self._resolve(DictionaryKind.LABEL, label_index))
        self._decode_properties(node, parts[2])
        return node

    def decode_edge(self, payload: Any) -> Edge:
        """Assemble an Edge from ``[id, type id, src id, dst id, [properties]]``."""
        parts = _as_list(payload, "edge")
        if len(parts) != 5:
            raise ProtocolError(f"edge payload must have 5 elements, got {len(parts)}")
        edge = Edge(_to_int(parts[0]))
        edge.relationship_type = self._resolve(DictionaryKind.RELATIONSHIP_TYPE, parts[1])
        edge.source = _to_int(parts[2])
        edge.destination = _to_int(parts[3])
        self._decode_properties(edge, parts[4])
        return edge

    def _resolve(self, kind: DictionaryKind, raw_index: Any) -> str:
        index = _to_int(raw_index)
        name = self._schema.resolve(kind, index)
        if name is None:
            raise ProtocolError(f"{kind.procedure} has no entry for id {index}")
        return name

    def _decode_properties(self, entity: GraphEntity, raw_properties: Any) -> None:
        for raw_property in _as_list(raw_properties, "properties"):
            prop = _as_list(raw_property, "property")
            if len(prop) != 3:
                raise ProtocolError(f"property must be [key id, type, value], got {len(prop)} elements")
            name = self._resolve(DictionaryKind.PROPERTY_KEY, prop[0])
            entity.add_property(name, self.decode_value(prop[1:]))

    @staticmethod
    def _decode_null(_payload: Any) -> None:
        return None

    @staticmethod
    def _passthrough(payload: Any) -> Any:
        return payload

    @staticmethod
    def _decode_boolean(payload: Any) -> bool:
        text = to_str(payload)
        if text == "true":
            return True
        if text == "false":
            return False
        raise ProtocolError(f"boolean payload must be 'true' or 'false', got {text!r}")

    def _decode_array(self, payload: Any) -> List[Any]:
        return [self.decode_value(item) for item in _as_list(payload, "array")]

    def _decode_map(self, payload: Any) -> Dict[str, Any]:
        flat = _as_list(payload, "map")
        if len(flat) % 2:
            raise ProtocolError("map payload must hold an even number of elements")
        result: Dict[str, Any] = {}
        for i in range(0, len(flat), 2):
            result[to_str(flat[i])] = self.decode_value(flat[i + 1])
        return result

    def _decode_path(self, payload: Any) -> Path:
        parts = _as_list(payload, "path")
        if len(parts) != 2:
            raise ProtocolError(f"path payload must have 2 elements, got {len(parts)}")
        nodes = self.decode_value(parts[0])
        edges = self.decode_value(parts[1])
        if not isinstance(nodes, list) or not isinstance(edges, list):
            raise ProtocolError("path payload must hold a node array and an edge array")
        return Path(nodes, edges)

    @staticmethod
    def _decode_point(payload: Any) -> Point:
        coords = _as_list(payload, "point")
        if len(coords) != 2:
            raise ProtocolError(f"point payload must have 2 elements, got {len(coords)}")
        return Point(_to_float(coords[0]), _to_float(coords[1]))


def _note_id(found: Dict[DictionaryKind, int], kind: DictionaryKind, raw: Any) -> None:
    # Malformed ids are left for the decoder to report.
    if isinstance(raw, int) and not isinstance(raw, bool) and raw >= 0:
        found[kind] = max(found.get(kind, -1), raw)


def _collect_ids(raw: Any, found: Dict[DictionaryKind, int]) -> None:
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        return
    tag, payload = raw
    if not isinstance(payload, (list, tuple)):
        return
    if tag == ValueType.NODE and len(payload) == 3:
        if isinstance(payload[1], (list, tuple)):
            for label_index in payload[1]:
                _note_id(found, DictionaryKind.LABEL, label_index)
        _collect_property_ids(payload[2], found)
    elif tag == ValueType.EDGE and len(payload) == 5:
        _note_id(found, DictionaryKind.RELATIONSHIP_TYPE, payload[1])
        _collect_property_ids(payload[4], found)
    elif tag in (ValueType.ARRAY, ValueType.PATH):
        for item in payload:
            _collect_ids(item, found)
    elif tag == ValueType.MAP:
        for item in payload[1::2]:
            _collect_ids(item, found)


def _collect_property_ids(raw: Any, found: Dict[DictionaryKind, int]) -> None:
    if not isinstance(raw, (list, tuple)):
        return
    for prop in raw:
        if isinstance(prop, (list, tuple)) and len(prop) == 3:
            _note_id(found, DictionaryKind.PROPERTY_KEY, prop[0])
            _collect_ids(prop[1:], found)


def schema_ids(raw_rows: Any) -> Dict[DictionaryKind, int]:
    """Highest dictionary id referenced per kind in a block of undecoded rows.

    Lets a caller fetch the dictionaries a reply needs before decoding it.
    """
    found: Dict[DictionaryKind, int] = {}
    if isinstance(raw_rows, (list, tuple)):
        for row in raw_rows:
            if isinstance(row, (list, tuple)):
                for cell in row:
                    _collect_ids(cell, found)
    return found
