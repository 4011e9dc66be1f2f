"""Tests for GeometryPipeline — results appended, inputs untouched."""

import pytest

from mapcore.errors import LayerSelectionError, NoIntersectionError
from mapcore.layers import LayerStore
from mapcore.operations import GeometryPipeline, SequentialIdSource, UuidIdSource
from tests.lib.layers import point_layer, polygon_layer


@pytest.fixture
def pipeline(store, ids):
    return GeometryPipeline(store, ids=ids)


def _fingerprint(store: LayerStore) -> list:
    return [
        (l.layer_id, [f.to_geojson() for f in l.features], l.visible, l.color)
        for l in store.snapshot
    ]


@pytest.mark.unit
class TestPipelineAppends:

    def test_buffer_appends(self, pipeline, store):
        """Buffer(P1, 0, "b") appends one visible layer."""
        added = pipeline.buffer("P1", 0, "b")
        assert len(added) == 1
        assert len(store) == 3
        assert store.snapshot[-1] is added[0]
        assert added[0].visible is True
        assert added[0].features[0].shape().area == pytest.approx(100.0)

    def test_intersect_appends(self, pipeline, store):
        added = pipeline.intersect("P1", "P2", "overlap")
        assert store.find(added[0].layer_id) is added[0]

    def test_union_with_point_layer_is_noop(self, pipeline, store):
        """Union with a Point layer leaves the store unchanged."""
        store.append(point_layer("pts", (1, 1)))
        before = store.snapshot
        assert pipeline.union("P1", "pts", "u") == []
        assert pipeline.union("pts", "P1", "u") == []
        assert store.snapshot is before
        assert len(store) == 3

    def test_difference_noop_when_covered(self, pipeline, store):
        assert pipeline.difference("P2", "P1", "gone") == []
        assert len(store) == 2

    def test_clip_appends_per_feature(self, pipeline, store):
        store.append(polygon_layer("T1", (1, 1, 2), name="T one"))
        store.append(polygon_layer("T2", (40, 40, 2), name="T two"))
        added = pipeline.clip(["T1", "T2"], "P1", "out")
        assert [l.name for l in added] == ["out (T one)"]
        assert len(store) == 5

    def test_clip_is_one_notification(self, pipeline, store):
        store.append(polygon_layer("T", (1, 1, 2), (3, 3, 2)))
        seen = []
        store.subscribe(seen.append)
        added = pipeline.clip(["T"], "P1", "out")
        assert len(added) == 2
        assert len(seen) == 1


@pytest.mark.unit
class TestPipelineInvariants:

    @pytest.mark.parametrize("run", [
        lambda p: p.buffer("P1", 250, "b"),
        lambda p: p.union("P1", "P2", "u"),
        lambda p: p.difference("P1", "P2", "d"),
        lambda p: p.intersect("P1", "P2", "i"),
        lambda p: p.clip(["P2"], "P1", "c"),
    ])
    def test_existing_layers_unchanged(self, pipeline, store, run):
        """Operations never modify the layers they read."""
        before_objects = list(store.snapshot)
        before = _fingerprint(store)
        added = run(pipeline)
        assert added
        assert _fingerprint(store)[: len(before)] == before
        assert list(store.snapshot[: len(before_objects)]) == before_objects
        assert all(a is b for a, b in zip(store.snapshot, before_objects))

    def test_ids_unique_across_many_operations(self, store):
        pipeline = GeometryPipeline(store, ids=SequentialIdSource("x-"))
        for i in range(5):
            pipeline.buffer("P1", i, f"b{i}")
            pipeline.intersect("P1", "P2", f"i{i}")
            pipeline.union("P1", "P2", f"u{i}")
        ids = [l.layer_id for l in store.snapshot]
        assert len(ids) == len(set(ids)) == 17

    def test_default_id_source(self, store):
        pipeline = GeometryPipeline(store)
        assert isinstance(pipeline.ids, UuidIdSource)
        added = pipeline.buffer("P1", 0, "b")
        assert added[0].layer_id.startswith("layer-")


@pytest.mark.unit
class TestPipelineErrors:

    def test_buffer_unknown_layer(self, pipeline, store):
        with pytest.raises(LayerSelectionError):
            pipeline.buffer("missing", 10, "b")
        assert len(store) == 2

    def test_intersect_no_overlap(self, pipeline, store):
        store.append(polygon_layer("far", (100, 100, 1)))
        with pytest.raises(NoIntersectionError):
            pipeline.intersect("P1", "far", "x")
        assert len(store) == 3
