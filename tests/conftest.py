"""Shared fixtures: sample layers, stores and a recording rendering surface."""

from __future__ import annotations

import pytest

from mapcore.layers import LayerStore
from mapcore.operations import SequentialIdSource
from tests.lib.layers import polygon_layer
from tests.lib.surfaces import RecordingSurface


@pytest.fixture
def surface():
    return RecordingSurface()


@pytest.fixture
def ids():
    return SequentialIdSource("derived-")


@pytest.fixture
def p1():
    """10x10 square."""
    return polygon_layer("P1", (0, 0, 10))


@pytest.fixture
def p2():
    """5x5 square fully inside P1."""
    return polygon_layer("P2", (2, 2, 5))


@pytest.fixture
def store(p1, p2):
    return LayerStore([p1, p2])
