import pytest
from pyproj import Transformer

from beltline_nodes.geometry import format_coordinate
from beltline_nodes.models import AccessPoint, RankedAssignment, SampledPoint
from beltline_nodes.nodes import (
    LOOKUP_COLUMNS,
    NODE_COLUMNS,
    build_imaging_nodes,
    image_path,
    lookup_table,
    nodes_table,
)

from conftest import make_segment

GA_WEST = "EPSG:26967"


@pytest.fixture
def origin():
    x, y = Transformer.from_crs("EPSG:4326", GA_WEST, always_xy=True).transform(-84.3650, 33.7700)
    return AccessPoint(id="7", x=x, y=y)


def assignment(access, dx, dy, rank=1, segment_id="101"):
    seg = make_segment([(access.x - 50, access.y), (access.x + 50, access.y)], (access.id,), segment_id)
    pt = SampledPoint(x=access.x + dx, y=access.y + dy, segment=seg)
    return RankedAssignment(point=pt, access=access, distance=(dx * dx + dy * dy) ** 0.5, rank=rank)


def test_builds_one_node_per_assignment(origin):
    ras = [assignment(origin, 10, 0), assignment(origin, 0, 10, rank=2), assignment(origin, -3, -3, rank=3)]
    nodes = build_imaging_nodes(ras, source_crs=GA_WEST, image_dir="outputs/images")
    assert [n.node_id for n in nodes] == [1, 2, 3]
    assert [n.heading for n in nodes] == [0.0, 90.0, -135.0]
    assert all(n.access_id == "7" and n.segment_id == "101" for n in nodes)

    first = nodes[0]
    assert first.coords == format_coordinate(origin.x + 10, origin.y, GA_WEST)
    assert first.path == f"outputs/images/1_{first.coords}_0.0.jpg"


def test_heading_rounded_to_one_decimal(origin):
    (node,) = build_imaging_nodes([assignment(origin, 10, 5)], source_crs=GA_WEST)
    assert node.heading == 26.6
    assert node.path.endswith("_26.6.jpg")


def test_paths_are_stable_across_runs(origin):
    ras = [assignment(origin, 10, 5), assignment(origin, -7, 2, rank=2)]
    first = build_imaging_nodes(ras, source_crs=GA_WEST, image_dir="img")
    second = build_imaging_nodes(ras, source_crs=GA_WEST, image_dir="img")
    assert [n.path for n in first] == [n.path for n in second]


def test_image_path_without_directory():
    assert image_path("", 4, "33.7700,-84.3650", 12.0) == "4_33.7700,-84.3650_12.0.jpg"
    assert image_path("imgs/", 4, "33.7700,-84.3650", -0.5) == "imgs/4_33.7700,-84.3650_-0.5.jpg"


def test_tables(origin):
    other = AccessPoint(id="8", x=origin.x + 100, y=origin.y)
    ras = [assignment(origin, 10, 0), assignment(other, 0, 10)]
    nodes = build_imaging_nodes(ras, source_crs=GA_WEST)

    table = nodes_table(nodes)
    assert list(table.columns) == NODE_COLUMNS
    assert table["OBJECTID"].tolist() == ["7", "8"]
    assert table["osm_id"].tolist() == ["101", "101"]

    lookup = lookup_table(nodes + nodes)
    assert list(lookup.columns) == LOOKUP_COLUMNS
    assert lookup["path"].is_unique
    assert lookup["node_id"].tolist() == [1, 2]


def test_empty_assignments():
    assert build_imaging_nodes((), source_crs=GA_WEST) == ()
    assert nodes_table(()).empty
    assert list(lookup_table(()).columns) == LOOKUP_COLUMNS
