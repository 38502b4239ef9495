from dataclasses import dataclass, field
from typing import NewType

import networkx as nx
from shapely.geometry import LineString, Point

AccessId = NewType("AccessId", str)
SegmentId = NewType("SegmentId", str)

# Node key: projected (x, y) rounded to the graph precision
Node = tuple[float, float]


@dataclass(frozen=True)
class AccessPoint:
    id: AccessId
    x: float  # meters in projected CRS
    y: float

    @property
    def point(self) -> Point:
        return Point(self.x, self.y)


@dataclass(frozen=True)
class StreetRecord:
    """One raw street geometry as it arrives from the street collection.

    ``highway`` is the allow-listed road class, kept for per-class reporting and for
    callers that filter records further.
    """

    segment_id: SegmentId | None
    geometry: object
    highway: str | None = None


@dataclass(frozen=True)
class Edge:
    u: Node
    v: Node
    segment_id: SegmentId
    geometry: LineString
    length: float
    source_ids: tuple[SegmentId, ...] = ()

    @property
    def endpoints(self) -> frozenset:
        return frozenset((self.u, self.v))

    @property
    def is_loop(self) -> bool:
        return self.u == self.v


@dataclass(frozen=True)
class StreetGraph:
    edges: tuple[Edge, ...] = ()

    def __len__(self):
        return len(self.edges)

    @property
    def nodes(self) -> tuple[Node, ...]:
        seen = {}
        for e in self.edges:
            seen.setdefault(e.u, None)
            seen.setdefault(e.v, None)
        return tuple(seen)

    def degree(self) -> dict:
        deg = {}
        for e in self.edges:
            deg[e.u] = deg.get(e.u, 0) + 1
            deg[e.v] = deg.get(e.v, 0) + 1
        return deg

    def to_networkx(self) -> nx.MultiGraph:
        G = nx.MultiGraph()
        G.add_nodes_from(self.nodes)
        for i, e in enumerate(self.edges):
            G.add_edge(e.u, e.v, key=i, edge=e, length=e.length, segment_id=e.segment_id)
        return G


@dataclass(frozen=True)
class CorridorSegment:
    edge: Edge
    access_ids: tuple[AccessId, ...]

    @property
    def segment_id(self) -> SegmentId:
        return self.edge.segment_id

    @property
    def geometry(self) -> LineString:
        return self.edge.geometry

    @property
    def length(self) -> float:
        return self.edge.length


@dataclass(frozen=True)
class SampledPoint:
    x: float
    y: float
    segment: CorridorSegment = field(repr=False)
    offset: float = 0.0
    index: int = 0

    @property
    def point(self) -> Point:
        return Point(self.x, self.y)


@dataclass(frozen=True)
class RankedAssignment:
    point: SampledPoint
    access: AccessPoint
    distance: float
    rank: int


@dataclass(frozen=True)
class ImagingNode:
    node_id: int
    segment_id: SegmentId
    access_id: AccessId
    coords: str
    heading: float
    path: str
