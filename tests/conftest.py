import pytest
from shapely.geometry import LineString

from beltline_nodes.models import AccessPoint, CorridorSegment, Edge, StreetRecord
from beltline_nodes.network import node_key


def make_record(segment_id, coords, highway="residential"):
    return StreetRecord(segment_id=segment_id, geometry=LineString(coords), highway=highway)


def make_edge(coords, segment_id="s1"):
    line = LineString(coords)
    return Edge(
        u=node_key(coords[0]),
        v=node_key(coords[-1]),
        segment_id=segment_id,
        geometry=line,
        length=line.length,
        source_ids=(segment_id,),
    )


def make_segment(coords, access_ids=("A",), segment_id="s1"):
    return CorridorSegment(edge=make_edge(coords, segment_id), access_ids=tuple(access_ids))


@pytest.fixture
def access_a():
    return AccessPoint(id="A", x=0.0, y=0.0)


@pytest.fixture
def two_access_points():
    # 30 m apart, 20 m discs overlap around x = 15
    return (AccessPoint(id="A", x=0.0, y=0.0), AccessPoint(id="B", x=30.0, y=0.0))
