"""Query results: header, statistics, records and the ResultSet envelope."""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from .decoder import ReplyDecoder, scan_for_errors, to_str
from .errors import ProtocolError, error_from_reply


class ColumnType:
    """Column kinds reported in the header of a reply."""
    UNKNOWN = 0
    SCALAR = 1
    NODE = 2
    RELATION = 3


class Header:
    """Ordered column names of a result (order is part of equality)."""

    __slots__ = ("_names", "_types")

    def __init__(self, schema_names: Sequence[str], column_types: Optional[Sequence[int]] = None):
        self._names: Tuple[str, ...] = tuple(schema_names)
        types = tuple(column_types) if column_types is not None else ()
        self._types: Tuple[int, ...] = types or (ColumnType.UNKNOWN,) * len(self._names)

    @classmethod
    def from_reply(cls, raw: Any) -> "Header":
        if not isinstance(raw, (list, tuple)):
            raise ProtocolError("result header must be an array")
        names: List[str] = []
        types: List[int] = []
        for column in raw:
            # Compact replies send [column type, name]; verbose ones send the bare name.
            if isinstance(column, (list, tuple)):
                if len(column) != 2:
                    raise ProtocolError("header column must be a [type, name] pair")
                types.append(int(column[0]))
                names.append(to_str(column[1]))
            else:
                types.append(ColumnType.UNKNOWN)
                names.append(to_str(column))
        return cls(names, types)

    @property
    def schema_names(self) -> List[str]:
        return list(self._names)

    @property
    def column_types(self) -> List[int]:
        return list(self._types)

    def index_of(self, name: str) -> int:
        try:
            return self._names.index(name)
        except ValueError:
            raise KeyError(f"no column named {name!r}") from None

    def __len__(self) -> int:
        return len(self._names)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Header):
            return NotImplemented
        return self._names == other._names

    def __hash__(self) -> int:
        return hash(self._names)

    def __repr__(self) -> str:
        return f"Header(schema_names=[{', '.join(self._names)}])"


class Statistics(Mapping[str, str]):
    """Counters and timings reported after a query.

    Values are kept as the server's text. Typed accessors return ``None`` when
    the server did not report the counter.
    """

    LABELS_ADDED = "Labels added"
    LABELS_REMOVED = "Labels removed"
    NODES_CREATED = "Nodes created"
    NODES_DELETED = "Nodes deleted"
    PROPERTIES_SET = "Properties set"
    PROPERTIES_REMOVED = "Properties removed"
    RELATIONSHIPS_CREATED = "Relationships created"
    RELATIONSHIPS_DELETED = "Relationships deleted"
    INDICES_CREATED = "Indices created"
    INDICES_DELETED = "Indices deleted"
    CACHED_EXECUTION = "Cached execution"
    QUERY_INTERNAL_EXECUTION_TIME = "Query internal execution time"

    def __init__(self, values: Optional[Mapping[str, str]] = None):
        self._values: Dict[str, str] = dict(values or {})

    @classmethod
    def from_reply(cls, raw: Any) -> "Statistics":
        if raw is None:
            return cls()
        lines = raw if isinstance(raw, (list, tuple)) else [raw]
        values: Dict[str, str] = {}
        for line in lines:
            text = to_str(line)
            name, sep, value = text.partition(":")
            if not sep:
                continue
            values[name.strip()] = value.strip()
        return cls(values)

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def get_string_value(self, label: str) -> Optional[str]:
        return self._values.get(label)

    def _int_value(self, label: str) -> Optional[int]:
        raw = self._values.get(label)
        return int(raw) if raw is not None else None

    @property
    def labels_added(self) -> Optional[int]:
        return self._int_value(self.LABELS_ADDED)

    @property
    def labels_removed(self) -> Optional[int]:
        return self._int_value(self.LABELS_REMOVED)

    @property
    def nodes_created(self) -> Optional[int]:
        return self._int_value(self.NODES_CREATED)

    @property
    def nodes_deleted(self) -> Optional[int]:
        return self._int_value(self.NODES_DELETED)

    @property
    def properties_set(self) -> Optional[int]:
        return self._int_value(self.PROPERTIES_SET)

    @property
    def properties_removed(self) -> Optional[int]:
        return self._int_value(self.PROPERTIES_REMOVED)

    @property
    def relationships_created(self) -> Optional[int]:
        return self._int_value(self.RELATIONSHIPS_CREATED)

    @property
    def relationships_deleted(self) -> Optional[int]:
        return self._int_value(self.RELATIONSHIPS_DELETED)

    @property
    def indices_created(self) -> Optional[int]:
        return self._int_value(self.INDICES_CREATED)

    @property
    def indices_deleted(self) -> Optional[int]:
        return self._int_value(self.INDICES_DELETED)

    @property
    def cached_execution(self) -> Optional[bool]:
        raw = self._values.get(self.CACHED_EXECUTION)
        if raw is None:
            return None
        return raw.strip() == "1"

    @property
    def query_internal_execution_time(self) -> Optional[float]:
        """Execution time in milliseconds."""
        raw = self._values.get(self.QUERY_INTERNAL_EXECUTION_TIME)
        if raw is None:
            return None
        return float(raw.split()[0])

    def __repr__(self) -> str:
        return f"Statistics({self._values!r})"


class Record:
    """One result row; values are addressable by column index or column name."""

    __slots__ = ("_header", "_values")

    def __init__(self, header: Header, values: Sequence[Any]):
        if len(header) != len(values):
            raise ValueError(f"record has {len(values)} values for {len(header)} columns")
        self._header = header
        self._values: Tuple[Any, ...] = tuple(values)

    @property
    def keys(self) -> List[str]:
        return self._header.schema_names

    @property
    def values(self) -> List[Any]:
        return list(self._values)

    @property
    def size(self) -> int:
        return len(self._values)

    def _index(self, key: Union[int, str]) -> int:
        if isinstance(key, str):
            return self._header.index_of(key)
        if isinstance(key, int) and not isinstance(key, bool):
            return key
        raise TypeError("record keys must be a column index or column name")

    def get(self, key: Union[int, str]) -> Any:
        return self._values[self._index(key)]

    def __getitem__(self, key: Union[int, str]) -> Any:
        return self.get(key)

    def get_string(self, key: Union[int, str]) -> Optional[str]:
        value = self.get(key)
        if value is None:
            return None
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def contains_key(self, name: str) -> bool:
        return name in self._header.schema_names

    def as_dict(self) -> Dict[str, Any]:
        return dict(zip(self._header.schema_names, self._values))

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return self._header == other._header and self._values == other._values

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Record({self.as_dict()!r})"


class ResultSet:
    """Decoded reply of a graph query.

    A three-element reply carries header, rows and statistics; anything else
    carries statistics only. Rows are decoded while the ResultSet is built so
    a failure never leaves a partial result behind; Record objects are
    created on iteration.
    """

    def __init__(self, reply: Any, decoder: Optional[ReplyDecoder] = None):
        self._header: Optional[Header] = None
        self._rows: List[List[Any]] = []

        if isinstance(reply, BaseException):
            raise error_from_reply(reply)

        if isinstance(reply, (list, tuple)):
            scan_for_errors(reply)
            if len(reply) == 3:
                self._header = Header.from_reply(reply[0])
                self._statistics = Statistics.from_reply(reply[2])
                raw_rows = reply[1]
                if not isinstance(raw_rows, (list, tuple)):
                    raise ProtocolError("result rows must be an array")
                if raw_rows and decoder is None:
                    raise ProtocolError("a decoder is required to read result rows")
                self._rows = [decoder.decode_row(row) for row in raw_rows] if raw_rows else []
            else:
                self._statistics = Statistics.from_reply(reply[-1] if reply else None)
        else:
            self._statistics = Statistics.from_reply(reply)

    @property
    def header(self) -> Optional[Header]:
        return self._header

    @property
    def statistics(self) -> Statistics:
        return self._statistics

    @property
    def rows(self) -> List[List[Any]]:
        return [list(row) for row in self._rows]

    def is_empty(self) -> bool:
        return not self._rows

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Record]:
        header = self._header
        for row in self._rows:
            yield Record(header, row)

    def __getitem__(self, index: int) -> Record:
        return Record(self._header, self._rows[index])

    def __repr__(self) -> str:
        return f"ResultSet(header={self._header!r}, rows={len(self._rows)}, statistics={self._statistics!r})"
