"""Graph values returned by the decoder: nodes, edges, paths and points."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union


class GraphEntity:
    """Common base of nodes and edges: an id plus an ordered property map.

    Ids are assigned by the server and reused after deletion, so they only
    identify an entity within a single result.
    """

    def __init__(self, entity_id: int = 0, properties: Optional[Mapping[str, Any]] = None):
        self.id = entity_id
        self._properties: Dict[str, Any] = dict(properties or {})

    @property
    def properties(self) -> Dict[str, Any]:
        return self._properties

    def add_property(self, name: str, value: Any) -> None:
        if not isinstance(name, str) or not name:
            raise ValueError("property name must be a non-empty string")
        self._properties[name] = value

    def get_property(self, name: str, default: Any = None) -> Any:
        return self._properties.get(name, default)

    def remove_property(self, name: str) -> None:
        self._properties.pop(name, None)

    @property
    def property_names(self) -> List[str]:
        return list(self._properties)

    @property
    def number_of_properties(self) -> int:
        return len(self._properties)

    def _properties_repr(self) -> str:
        return "{" + ", ".join(f"{k}={v!r}" for k, v in self._properties.items()) + "}"

    # Mutable value objects; equality is structural so hashing is disabled.
    __hash__ = None  # type: ignore[assignment]


class Node(GraphEntity):
    """A graph node with a set of labels."""

    def __init__(
        self,
        entity_id: int = 0,
        labels: Optional[Iterable[str]] = None,
        properties: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(entity_id, properties)
        self._labels: List[str] = []
        for label in labels or ():
            self.add_label(label)

    @property
    def labels(self) -> List[str]:
        return list(self._labels)

    @property
    def label(self) -> Optional[str]:
        return self._labels[0] if self._labels else None

    def add_label(self, label: str) -> None:
        if not isinstance(label, str):
            raise ValueError("node labels must be strings")
        if label not in self._labels:
            self._labels.append(label)

    def remove_label(self, label: str) -> None:
        if label in self._labels:
            self._labels.remove(label)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Node):
            return NotImplemented
        return (
            self.id == other.id
            and set(self._labels) == set(other._labels)
            and self._properties == other._properties
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Node(id={self.id}, labels={self._labels!r}, properties={self._properties_repr()})"


class Edge(GraphEntity):
    """A directed, typed relationship between two node ids."""

    def __init__(
        self,
        entity_id: int = 0,
        relationship_type: Optional[str] = None,
        source: int = 0,
        destination: int = 0,
        properties: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(entity_id, properties)
        self.relationship_type = relationship_type
        self.source = source
        self.destination = destination

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Edge):
            return NotImplemented
        return (
            self.id == other.id
            and self.relationship_type == other.relationship_type
            and self.source == other.source
            and self.destination == other.destination
            and self._properties == other._properties
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"Edge(id={self.id}, relationship_type={self.relationship_type!r}, "
            f"source={self.source}, destination={self.destination}, "
            f"properties={self._properties_repr()})"
        )


class Path:
    """Alternating sequence of nodes and edges, starting and ending with a node."""

    __slots__ = ("_nodes", "_edges")

    def __init__(self, nodes: Sequence[Node], edges: Sequence[Edge]):
        if len(nodes) != len(edges) + 1:
            raise ValueError(
                f"path requires one more node than edges, got {len(nodes)} nodes and {len(edges)} edges"
            )
        for node in nodes:
            if not isinstance(node, Node):
                raise TypeError("path nodes must be Node instances")
        for edge in edges:
            if not isinstance(edge, Edge):
                raise TypeError("path edges must be Edge instances")
        self._nodes: Tuple[Node, ...] = tuple(nodes)
        self._edges: Tuple[Edge, ...] = tuple(edges)

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes)

    @property
    def edges(self) -> List[Edge]:
        return list(self._edges)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    @property
    def length(self) -> int:
        return len(self._edges)

    def get_node(self, index: int) -> Node:
        return self._nodes[index]

    def get_edge(self, index: int) -> Edge:
        return self._edges[index]

    @property
    def first_node(self) -> Node:
        return self._nodes[0]

    @property
    def last_node(self) -> Node:
        return self._nodes[-1]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Path):
            return NotImplemented
        return self._nodes == other._nodes and self._edges == other._edges

    def __hash__(self) -> int:
        # Ids plus types are enough to bucket paths; __eq__ settles the rest.
        return hash(
            (
                tuple(node.id for node in self._nodes),
                tuple((edge.id, edge.relationship_type) for edge in self._edges),
            )
        )

    def __repr__(self) -> str:
        return f"Path(nodes={list(self._nodes)!r}, edges={list(self._edges)!r})"


class PathBuilder:
    """Incrementally assemble a Path, enforcing Node/Edge alternation."""

    def __init__(self) -> None:
        self._nodes: List[Node] = []
        self._edges: List[Edge] = []
        self._expect = Node

    def append(self, entity: Union[Node, Edge]) -> "PathBuilder":
        if isinstance(entity, Node):
            return self.append_node(entity)
        if isinstance(entity, Edge):
            return self.append_edge(entity)
        raise TypeError("path builder accepts only Node or Edge instances")

    def append_node(self, node: Node) -> "PathBuilder":
        if self._expect is not Node:
            raise ValueError("path builder expected Edge but was Node")
        self._nodes.append(node)
        self._expect = Edge
        return self

    def append_edge(self, edge: Edge) -> "PathBuilder":
        if self._expect is not Edge:
            raise ValueError("path builder expected Node but was Edge")
        self._edges.append(edge)
        self._expect = Node
        return self

    def build(self) -> Path:
        if len(self._nodes) != len(self._edges) + 1:
            raise ValueError("path builder nodes count should be edge count + 1")
        return Path(self._nodes, self._edges)


@dataclass(frozen=True)
class Point:
    """Geographic point; ``x`` is the latitude and ``y`` the longitude."""

    x: float
    y: float

    @property
    def latitude(self) -> float:
        return self.x

    @property
    def longitude(self) -> float:
        return self.y
