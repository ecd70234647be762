"""
Shared test fixtures for shadow casting and shadow-driven surface design.
"""
import sys
from pathlib import Path

import numpy as np
import pytest
from shapely.geometry import Polygon

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shadowcast.contracts import Surface


@pytest.fixture
def unit_square():
    """Unit square with corners at (0,0), (1,0), (1,1), (0,1)."""
    return Polygon([(0, 0), (1, 0), (1, 1), (0, 1)])


@pytest.fixture
def centered_square():
    """1x1 square centred on the origin."""
    return Polygon([(-0.5, -0.5), (0.5, -0.5), (0.5, 0.5), (-0.5, 0.5)])


@pytest.fixture
def square_with_hole():
    """2x2 square centred on the origin with a 1x1 square hole."""
    return Polygon(
        [(-1, -1), (1, -1), (1, 1), (-1, 1)],
        holes=[[(-0.5, -0.5), (-0.5, 0.5), (0.5, 0.5), (0.5, -0.5)]],
    )


@pytest.fixture
def flat_triangle():
    """Upward-facing triangle lying on z = 0, centroid at (1, 1, 0)."""
    return Surface(
        np.array([[0.0, 0.0, 0.0], [3.0, 0.0, 0.0], [0.0, 3.0, 0.0]]),
        np.array([[0, 1, 2]]),
    )


@pytest.fixture
def wavy_disc():
    """A wavy ring band hovering around z = 3 (50 segments)."""
    sz = 50
    t = np.linspace(0.0, 2.0, sz)
    x = np.cos(np.pi * t)
    y = np.sin(np.pi * t)
    z = np.cos(np.pi * t * 4) / 3
    vertices = np.vstack([
        np.column_stack([x, y, z + 3]),
        np.column_stack([x * 2, y * 2, -z + 3]),
    ])
    i = np.arange(sz)
    j = (i + 1) % sz
    quads = np.column_stack([i, j, j + sz, i + sz])
    faces = np.vstack([quads[:, [0, 1, 2]], quads[:, [0, 2, 3]]])
    return Surface(vertices, faces)


@pytest.fixture
def tetrahedron():
    """Small closed tetrahedron well below a light at z = 4."""
    return Surface(
        np.array([
            [0.0, 0.0, 0.5],
            [1.0, 0.0, 0.5],
            [0.0, 1.0, 0.5],
            [0.0, 0.0, 1.5],
        ]),
        np.array([[0, 2, 1], [0, 1, 3], [1, 2, 3], [0, 3, 2]]),
    )
