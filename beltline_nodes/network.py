import logging
import math
from collections import Counter

import networkx as nx
import numpy as np
from shapely.geometry import LineString, Point
from shapely.strtree import STRtree

from .geometry import decompose_lines
from .logging_utils import log_step
from .models import Edge, StreetGraph

logger = logging.getLogger(__name__)

NODE_PRECISION = 6


# -------------------- Nodes & edges --------------------
def node_key(coord, precision: int = NODE_PRECISION):
    """Coordinates that round to the same key are the same graph node."""
    return (round(float(coord[0]), precision) + 0.0, round(float(coord[1]), precision) + 0.0)


def _make_edge(coords, segment_id, precision, source_ids=None, u=None, v=None) -> Edge:
    coords = [(float(c[0]), float(c[1])) for c in coords]
    line = LineString(coords)
    return Edge(
        u=u if u is not None else node_key(coords[0], precision),
        v=v if v is not None else node_key(coords[-1], precision),
        segment_id=segment_id,
        geometry=line,
        length=float(line.length),
        source_ids=tuple(source_ids) if source_ids else (segment_id,),
    )


def _has_id(segment_id) -> bool:
    return segment_id is not None and str(segment_id).strip() != ""


# Purpose: Build the raw undirected street graph, one edge per simple line part.
# Inputs:
# - records (iterable[StreetRecord]): Street geometries in a projected CRS.
# - precision (int): Decimal places used to key coincident endpoints onto shared nodes.
# Outputs:
# - StreetGraph: Edges in record order. Records without an identifier are skipped.
def build_street_graph(records, precision: int = NODE_PRECISION) -> StreetGraph:
    edges = []
    skipped = 0
    for rec in records:
        if not _has_id(rec.segment_id):
            skipped += 1
            continue
        for line in decompose_lines(rec.geometry):
            edges.append(_make_edge(line.coords, rec.segment_id, precision))
    if skipped:
        logger.debug(f"Skipped {skipped} street records without an identifier.")
    return StreetGraph(tuple(edges))


# Purpose: Drop self-loops, zero-length edges and every multi-edge after the first one per node pair.
# Inputs:
# - graph (StreetGraph): Any street graph.
# Outputs:
# - StreetGraph: New graph; surviving edges keep their relative order.
def remove_degenerate_edges(graph: StreetGraph) -> StreetGraph:
    seen = set()
    kept = []
    loops = zero = multi = 0
    for e in graph.edges:
        if e.is_loop:
            loops += 1
            continue
        if e.length <= 0:
            zero += 1
            continue
        if e.endpoints in seen:
            multi += 1
            continue
        seen.add(e.endpoints)
        kept.append(e)
    if loops or zero or multi:
        logger.info(f"Removed {loops} self-loops, {multi} multi-edges, {zero} zero-length edges.")
    return StreetGraph(tuple(kept))


def _insert_vertices(coords, extra):
    """Insert points lying on the line into its coordinate list, ordered along the line."""
    line = LineString(coords)
    cum = [0.0]
    for (x0, y0), (x1, y1) in zip(coords[:-1], coords[1:]):
        cum.append(cum[-1] + math.hypot(x1 - x0, y1 - y0))
    items = [(cum[i], 0, c) for i, c in enumerate(coords)]
    items += [(line.project(Point(p)), 1, p) for p in extra]
    items.sort(key=lambda t: (t[0], t[1]))
    return [c for _, _, c in items]


# Purpose: Find graph nodes sitting on another edge's interior without being one of its vertices.
# Inputs:
# - graph (StreetGraph): Street graph.
# - precision (int): Node precision; the on-line tolerance is one unit of the last kept decimal.
# Outputs:
# - dict[int, list[Node]]: Edge position → nodes to insert into that edge.
def _nodes_on_interiors(graph: StreetGraph, precision: int) -> dict:
    nodes = graph.nodes
    tree = STRtree([e.geometry for e in graph.edges])
    node_geoms = np.array([Point(n) for n in nodes], dtype=object)
    node_idx, edge_idx = tree.query(node_geoms, predicate="dwithin", distance=10.0 ** -precision)
    vertex_keys = {}
    extra = {}
    for ni, ei in sorted(zip(node_idx.tolist(), edge_idx.tolist())):
        e = graph.edges[ei]
        if ei not in vertex_keys:
            vertex_keys[ei] = {node_key(c, precision) for c in e.geometry.coords}
        if nodes[ni] in vertex_keys[ei]:
            continue
        extra.setdefault(ei, []).append(nodes[ni])
    return extra


# Purpose: Split edges where another street touches them so touching streets meet at a shared node.
# Split points are interior vertices shared with another edge and nodes lying on an edge's interior.
# Lines that merely cross without a shared vertex (bridges, overpasses) are left unsplit.
# Inputs:
# - graph (StreetGraph): Graph without self-loops or multi-edges.
# - precision (int): Same node precision the graph was built with.
# Outputs:
# - StreetGraph: Subdivided graph with degenerate pieces removed.
def subdivide(graph: StreetGraph, precision: int = NODE_PRECISION) -> StreetGraph:
    if not graph.edges:
        return graph
    extra = _nodes_on_interiors(graph, precision)
    endpoints = set(graph.nodes)
    shared = Counter()
    for e in graph.edges:
        interior = {node_key(c, precision) for c in list(e.geometry.coords)[1:-1]}
        shared.update(interior)
    split_keys = endpoints | {k for k, n in shared.items() if n > 1}

    pieces = []
    n_split = 0
    for ei, e in enumerate(graph.edges):
        coords = [(float(c[0]), float(c[1])) for c in e.geometry.coords]
        if ei in extra:
            coords = _insert_vertices(coords, extra[ei])
        cuts = [
            i for i in range(1, len(coords) - 1)
            if node_key(coords[i], precision) in split_keys
        ]
        if not cuts:
            pieces.append(e)
            continue
        n_split += 1
        start = 0
        for i in cuts + [len(coords) - 1]:
            pieces.append(_make_edge(coords[start:i + 1], e.segment_id, precision, e.source_ids))
            start = i
    logger.info(f"Subdivision: split {n_split} edges, {len(graph)} → {len(pieces)} edges")
    return remove_degenerate_edges(StreetGraph(tuple(pieces)))


def _oriented_coords(edge: Edge, end_at):
    coords = list(edge.geometry.coords)
    return coords if edge.v == end_at else coords[::-1]


# Purpose: Collapse pseudo nodes (degree 2) by merging their two incident edges.
# Inputs:
# - graph (StreetGraph): Graph to smooth. Multi-edges and self-loops are removed first.
# - precision (int): Same node precision the graph was built with.
# Outputs:
# - StreetGraph: New graph; a merged edge takes the position and segment id of the earlier of its two edges.
def smooth(graph: StreetGraph, precision: int = NODE_PRECISION) -> StreetGraph:
    graph = remove_degenerate_edges(graph)
    if not graph.edges:
        return graph

    edges = dict(enumerate(graph.edges))
    position = {i: i for i in edges}
    G = nx.Graph()
    for i, e in edges.items():
        G.add_edge(e.u, e.v, idx=i)

    next_idx = len(edges)
    merged = 0
    for n in list(G.nodes):
        if G.degree(n) != 2:
            continue
        a, b = list(G.neighbors(n))
        # merging would duplicate an existing a-b edge
        if G.has_edge(a, b):
            continue
        i1, i2 = G[a][n]["idx"], G[n][b]["idx"]
        if position[i2] < position[i1]:
            i1, i2 = i2, i1
        first, second = edges[i1], edges[i2]
        head = _oriented_coords(first, end_at=n)
        tail = _oriented_coords(second, end_at=n)[::-1]
        p = first.u if first.v == n else first.v
        q = second.v if second.u == n else second.u

        new = _make_edge(
            head + tail[1:],
            first.segment_id,
            precision,
            first.source_ids + second.source_ids,
            u=p,
            v=q,
        )

        G.remove_node(n)
        G.add_edge(p, q, idx=next_idx)
        edges[next_idx] = new
        position[next_idx] = min(position[i1], position[i2])
        del edges[i1], edges[i2]
        next_idx += 1
        merged += 1

    out = tuple(edges[i] for i in sorted(edges, key=lambda i: position[i]))
    logger.info(f"Smoothing: collapsed {merged} pseudo nodes, {len(graph)} → {len(out)} edges")
    return StreetGraph(out)


# Purpose: Full street cleanup, from raw records to a subdivided and smoothed edge set.
# Inputs:
# - records (iterable[StreetRecord]): Street geometries already in the projected CRS.
# - precision (int): Node key precision in CRS units (decimal places).
# Outputs:
# - StreetGraph: No self-loops, no multi-edges, no zero-length edges. Empty input → empty graph.
def clean_street_graph(records, precision: int = NODE_PRECISION) -> StreetGraph:
    with log_step("Build street graph"):
        graph = build_street_graph(records, precision)
        logger.info(f"Street graph: {len(graph)} edges, {len(graph.nodes)} nodes")
    if not graph.edges:
        logger.warning("No usable street geometry; street graph is empty.")
        return graph
    with log_step("Clean street graph (dedup → subdivide → smooth)"):
        graph = remove_degenerate_edges(graph)
        graph = subdivide(graph, precision)
        graph = smooth(graph, precision)
        graph = remove_degenerate_edges(graph)
    logger.info(f"Cleaned street graph: {len(graph)} edges, {len(graph.nodes)} nodes")
    return graph
