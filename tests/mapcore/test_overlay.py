"""Tests for union, difference, intersect and clip."""

import pytest
from shapely.geometry import box

from mapcore.errors import LayerSelectionError, NoIntersectionError
from mapcore.layers import Layer, LayerFeature
from mapcore.operations import DEFAULT_COLORS, clip, difference, intersect, union
from tests.lib.layers import line_layer, point_layer, polygon_layer


def _same_geometries(a: Layer, b: Layer) -> bool:
    """Feature sets are geometrically equal, ignoring order."""
    if len(a.features) != len(b.features):
        return False
    remaining = [f.shape() for f in b.features]
    for feature in a.features:
        geom = feature.shape()
        match = next((g for g in remaining if g.equals(geom)), None)
        if match is None:
            return False
        remaining.remove(match)
    return True


@pytest.mark.unit
class TestIntersect:

    def test_square_inside_square(self, p1, p2, ids):
        """Intersect(P1, P2) yields exactly P2's square."""
        out = intersect([p1, p2], "P1", "P2", "overlap", ids=ids)
        assert len(out.features) == 1
        assert out.features[0].shape().equals(box(2, 2, 7, 7))
        assert out.visible is True
        assert out.color == DEFAULT_COLORS["intersect"]
        assert out.source_format == "intersect"

    def test_properties_merged_second_wins(self, ids):
        a = polygon_layer("A", (0, 0, 10), props=[{"name": "a", "only_a": 1}])
        b = polygon_layer("B", (5, 5, 10), props=[{"name": "b", "only_b": 2}])
        out = intersect([a, b], "A", "B", "x", ids=ids)
        assert dict(out.features[0].properties) == {"name": "b", "only_a": 1, "only_b": 2}

    def test_all_pairs(self, ids):
        """Every overlapping pair produces one feature."""
        a = polygon_layer("A", (0, 0, 2), (10, 0, 2))
        b = polygon_layer("B", (1, 1, 2), (11, 1, 2), (50, 50, 1))
        out = intersect([a, b], "A", "B", "x", ids=ids)
        assert len(out.features) == 2
        assert sum(f.shape().area for f in out.features) == pytest.approx(2.0)

    def test_commutative_geometry(self, ids):
        a = polygon_layer("A", (0, 0, 4), (6, 0, 4))
        b = polygon_layer("B", (2, 2, 6), (100, 100, 1))
        ab = intersect([a, b], "A", "B", "ab", ids=ids)
        ba = intersect([a, b], "B", "A", "ba", ids=ids)
        assert _same_geometries(ab, ba)

    def test_no_overlap_raises(self, ids):
        a = polygon_layer("A", (0, 0, 1))
        b = polygon_layer("B", (5, 5, 1))
        with pytest.raises(NoIntersectionError, match="No intersections found"):
            intersect([a, b], "A", "B", "x", ids=ids)

    def test_shared_edge_is_not_an_intersection(self, ids):
        """Touching squares share only a line, which has no area."""
        a = polygon_layer("A", (0, 0, 1))
        b = polygon_layer("B", (1, 0, 1))
        with pytest.raises(NoIntersectionError):
            intersect([a, b], "A", "B", "x", ids=ids)

    def test_non_polygonal_features_skipped(self, p1, ids):
        pts = point_layer("pts", (5, 5))
        with pytest.raises(NoIntersectionError):
            intersect([p1, pts], "P1", "pts", "x", ids=ids)

    def test_mixed_layer_uses_polygons_only(self, p1, ids):
        mixed = Layer("mixed", "Mixed", features=(
            LayerFeature("pt", "Point", [5, 5], {}),
            LayerFeature("sq", "Polygon", [[[8, 8], [12, 8], [12, 12], [8, 12], [8, 8]]], {}),
        ))
        out = intersect([p1, mixed], "P1", "mixed", "x", ids=ids)
        assert len(out.features) == 1
        assert out.features[0].shape().equals(box(8, 8, 10, 10))

    @pytest.mark.parametrize("first,second", [("P1", "missing"), ("missing", "P1"), ("", "")])
    def test_unresolved_ids_raise(self, p1, ids, first, second):
        with pytest.raises(LayerSelectionError, match="two valid layers"):
            intersect([p1], first, second, "x", ids=ids)


@pytest.mark.unit
class TestUnion:

    def test_union_of_overlapping_squares(self, ids):
        a = polygon_layer("A", (0, 0, 2))
        b = polygon_layer("B", (1, 0, 2))
        out = union([a, b], "A", "B", "merged", ids=ids)
        assert len(out.features) == 1
        assert out.features[0].geometry_type == "Polygon"
        assert out.features[0].shape().area == pytest.approx(6.0)
        assert out.color == DEFAULT_COLORS["union"]
        assert out.name == "merged"

    def test_disjoint_union_is_multipolygon(self, ids):
        a = polygon_layer("A", (0, 0, 1))
        b = polygon_layer("B", (5, 5, 1))
        out = union([a, b], "A", "B", "merged", ids=ids)
        assert out.features[0].geometry_type == "MultiPolygon"

    def test_only_first_features_combined(self, ids):
        """Later features of either layer are ignored."""
        a = polygon_layer("A", (0, 0, 1), (100, 100, 1))
        b = polygon_layer("B", (0, 0, 1), (200, 200, 1))
        out = union([a, b], "A", "B", "merged", ids=ids)
        assert out.features[0].shape().area == pytest.approx(1.0)

    @pytest.mark.parametrize("order", [("P1", "pts"), ("pts", "P1")])
    def test_point_layer_is_silent_noop(self, p1, ids, order):
        pts = point_layer("pts", (1, 1))
        assert union([p1, pts], *order, "merged", ids=ids) is None

    def test_empty_layer_is_silent_noop(self, p1, ids):
        assert union([p1, Layer("empty", "Empty")], "P1", "empty", "m", ids=ids) is None

    def test_missing_layer_is_silent_noop(self, p1, ids):
        assert union([p1], "P1", "missing", "m", ids=ids) is None


@pytest.mark.unit
class TestDifference:

    def test_hole_punched(self, p1, p2, ids):
        out = difference([p1, p2], "P1", "P2", "ring", ids=ids)
        geom = out.features[0].shape()
        assert geom.area == pytest.approx(75.0)
        assert len(geom.interiors) == 1
        assert out.color == DEFAULT_COLORS["difference"]
        assert out.source_format == "difference"

    def test_fully_covered_base_is_noop(self, p1, p2, ids):
        """Nothing left after subtraction: no layer."""
        assert difference([p1, p2], "P2", "P1", "gone", ids=ids) is None

    def test_line_layer_is_silent_noop(self, p1, ids):
        road = line_layer("road", [[0, 0], [10, 10]])
        assert difference([p1, road], "P1", "road", "x", ids=ids) is None

    def test_disjoint_subtract_keeps_base(self, ids):
        a = polygon_layer("A", (0, 0, 1))
        b = polygon_layer("B", (5, 5, 1))
        out = difference([a, b], "A", "B", "same", ids=ids)
        assert out.features[0].shape().equals(box(0, 0, 1, 1))


@pytest.mark.unit
class TestClip:

    def test_only_intersecting_target_produces_layer(self, ids):
        """Clip([T1, T2], C) where only T1 overlaps C."""
        t1 = polygon_layer("T1", (0, 0, 4), name="Parcels")
        t2 = polygon_layer("T2", (50, 50, 4), name="Far away")
        c = polygon_layer("C", (2, 2, 10))
        out = clip([t1, t2, c], ["T1", "T2"], "C", "out", ids=ids)
        assert len(out) == 1
        assert out[0].name == "out (Parcels)"
        assert out[0].features[0].shape().equals(box(2, 2, 4, 4))
        assert out[0].color == DEFAULT_COLORS["clip"]

    def test_one_layer_per_surviving_feature(self, ids):
        t = polygon_layer("T", (0, 0, 2), (3, 0, 2), (100, 0, 2), props=[{"n": 0}, {"n": 1}, {"n": 2}])
        c = polygon_layer("C", (1, 0, 3))
        out = clip([t, c], ["T"], "C", "cut", ids=ids)
        assert len(out) == 2
        assert [dict(l.features[0].properties) for l in out] == [{"n": 0}, {"n": 1}]
        assert len({l.layer_id for l in out}) == 2
        assert all(l.name == "cut (T)" for l in out)

    def test_clip_boundary_is_first_feature_only(self, ids):
        t = polygon_layer("T", (10, 10, 2))
        c = polygon_layer("C", (0, 0, 1), (9, 9, 5))
        assert clip([t, c], ["T"], "C", "cut", ids=ids) == []

    def test_non_polygonal_targets_skipped(self, ids):
        pts = point_layer("pts", (1, 1))
        c = polygon_layer("C", (0, 0, 5))
        assert clip([pts, c], ["pts"], "C", "cut", ids=ids) == []

    def test_non_polygonal_clip_layer(self, p1, ids):
        pts = point_layer("pts", (1, 1))
        assert clip([p1, pts], ["P1"], "pts", "cut", ids=ids) == []

    def test_missing_clip_layer_and_targets(self, p1, ids):
        assert clip([p1], ["P1"], "missing", "cut", ids=ids) == []
        assert clip([p1], ["missing"], "P1", "cut", ids=ids) == []

    def test_ids_fresh_against_snapshot(self, ids):
        t = polygon_layer("derived-1", (0, 0, 2), (1, 1, 2))
        c = polygon_layer("C", (0, 0, 5))
        out = clip([t, c], ["derived-1"], "C", "cut", ids=ids)
        assert [l.layer_id for l in out] == ["derived-2", "derived-3"]


BOWTIE = [[[0, 0], [2, 2], [2, 0], [0, 2], [0, 0]]]


@pytest.fixture
def bowtie():
    """Self-intersecting ring: two unit-area triangles meeting at (1, 1)."""
    return Layer("bow", "Bowtie", features=(LayerFeature("b0", "Polygon", BOWTIE, {"name": "bow"}),))


@pytest.fixture
def right_square():
    """box(1, 0, 3, 2): holds the bowtie's right triangle, touches the left one at (1, 1)."""
    return polygon_layer("S", (1, 0, 2))


@pytest.mark.unit
class TestSelfIntersectingInput:
    """Invalid rings are repaired before overlay."""

    def test_union(self, bowtie, right_square, ids):
        out = union([bowtie, right_square], "bow", "S", "u", ids=ids)
        assert out is not None
        assert out.features[0].shape().area == pytest.approx(5.0)

    def test_intersect(self, bowtie, right_square, ids):
        out = intersect([bowtie, right_square], "bow", "S", "i", ids=ids)
        assert len(out.features) == 1
        assert out.features[0].shape().area == pytest.approx(1.0)
        assert out.features[0].properties["name"] == "S-0"

    def test_difference(self, bowtie, right_square, ids):
        out = difference([bowtie, right_square], "bow", "S", "d", ids=ids)
        assert out is not None
        remainder = out.features[0].shape()
        assert remainder.area == pytest.approx(1.0)
        assert remainder.bounds == pytest.approx((0, 0, 1, 2))

    def test_clip_target(self, bowtie, right_square, ids):
        out = clip([bowtie, right_square], ["bow"], "S", "c", ids=ids)
        assert len(out) == 1
        assert out[0].features[0].shape().area == pytest.approx(1.0)
        assert out[0].features[0].properties["name"] == "bow"

    def test_clip_boundary(self, bowtie, right_square, ids):
        out = clip([bowtie, right_square], ["S"], "bow", "c", ids=ids)
        assert len(out) == 1
        assert out[0].features[0].shape().area == pytest.approx(1.0)

    def test_repaired_output_is_valid(self, bowtie, right_square, ids):
        out = union([bowtie, right_square], "bow", "S", "u", ids=ids)
        assert out.features[0].shape().is_valid
