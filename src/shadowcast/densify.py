"""
Polygon densification and triangulation.

Boundary edges are subdivided so every segment is at most ``1/density`` long,
which keeps curved mappings of the polygon smooth. Triangulation is a
pluggable strategy chosen by ``MeshConfig.strategy``:

1. ``boundary``   - constrained Delaunay on the dense boundary (Shapely/GEOS).
2. ``conforming`` - quality mesh with interior points (trimesh + triangle).
"""
from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import shapely
import trimesh
from shapely.geometry import MultiPolygon, Polygon

from shadowcast.contracts import (
    ConfigurationError,
    MeshConfig,
    PolygonLike,
    ResourceLimitError,
    Surface,
    as_polygon,
)

logger = logging.getLogger(__name__)


def estimate_mesh_size(polygon: PolygonLike, density: float) -> float:
    """Predicted output size of a mesh: area times density squared."""
    return float(as_polygon(polygon).area) * float(density) ** 2


def densify_polygon(
    polygon: PolygonLike,
    density: float = 10.0,
    max_predicted_size: float = MeshConfig.max_predicted_size,
) -> Union[Polygon, MultiPolygon]:
    """Subdivide every boundary edge of *polygon* to the requested density.

    Each edge of length L is split into ``max(1, ceil(density * L))`` equal
    segments. Original vertices are kept, so the footprint does not change.

    Raises:
        ConfigurationError: density is not a finite positive number.
        ResourceLimitError: ``area * density**2`` exceeds *max_predicted_size*.
    """
    if not math.isfinite(density) or density <= 0:
        raise ConfigurationError(f"density must be a finite value > 0, got {density!r}")

    polygon = as_polygon(polygon)
    predicted = estimate_mesh_size(polygon, density)
    if predicted > max_predicted_size:
        raise ResourceLimitError(
            f"Predicted mesh size {predicted:.0f} exceeds limit "
            f"{max_predicted_size:.0f}; pick a smaller density"
        )
    if polygon.is_empty:
        return polygon

    parts = [
        Polygon(
            _densify_ring(part.exterior.coords, density),
            [_densify_ring(ring.coords, density) for ring in part.interiors],
        )
        for part in _polygon_parts(polygon)
    ]
    if isinstance(polygon, MultiPolygon):
        return MultiPolygon(parts)
    return parts[0]


def _densify_ring(coords: Sequence[Sequence[float]], density: float) -> List[Tuple[float, float]]:
    """Expand one closed ring, emitting each shared vertex once."""
    pts = np.asarray(coords, dtype=float)[:, :2]
    if len(pts) > 1 and np.allclose(pts[0], pts[-1], rtol=0.0, atol=0.0):
        pts = pts[:-1]

    out: List[Tuple[float, float]] = []
    n = len(pts)
    for i in range(n):
        start = pts[i]
        end = pts[(i + 1) % n]
        length = float(np.hypot(*(end - start)))
        if length == 0.0:
            continue
        segments = max(1, int(math.ceil(density * length - 1e-9)))
        # All but the final point; the next edge starts there.
        t = np.arange(segments, dtype=float) / segments
        edge = start[None, :] + t[:, None] * (end - start)[None, :]
        edge[0] = start
        out.extend((float(x), float(y)) for x, y in edge)
    return out


def _polygon_parts(polygon) -> List[Polygon]:
    if isinstance(polygon, MultiPolygon):
        return [p for p in polygon.geoms if not p.is_empty]
    if polygon.is_empty:
        return []
    return [polygon]


# ─── Meshing strategies ──────────────────────────────────────────────────────

class PolygonMesher(ABC):
    """Strategy interface: turn a densified polygon into a planar Surface.

    Implementations return faces wound counter-clockwise (normal +z) and
    place every vertex at ``config.z``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def triangulate(self, polygon: Union[Polygon, MultiPolygon], config: MeshConfig) -> Surface:
        ...


class BoundarySubdivisionMesher(PolygonMesher):
    """Constrained Delaunay triangulation using only the boundary vertices."""

    name = "boundary"

    def triangulate(self, polygon, config: MeshConfig) -> Surface:
        vertices: List[Tuple[float, float]] = []
        index: Dict[Tuple[float, float], int] = {}
        faces: List[List[int]] = []

        def vertex_id(xy: Tuple[float, float]) -> int:
            if xy not in index:
                index[xy] = len(vertices)
                vertices.append(xy)
            return index[xy]

        for part in _polygon_parts(polygon):
            for ring in [part.exterior, *part.interiors]:
                for x, y in ring.coords[:-1]:
                    vertex_id((float(x), float(y)))
            triangles = shapely.constrained_delaunay_triangles(part)
            for tri in triangles.geoms:
                if tri.is_empty or tri.area <= 0.0:
                    continue
                coords = list(tri.exterior.coords)[:3]
                faces.append([vertex_id((float(x), float(y))) for x, y, *_ in coords])

        return _planar_surface(np.asarray(vertices, dtype=float), faces, config.z)


class ConformingMesher(PolygonMesher):
    """Quality triangulation with interior points, via the ``triangle`` library.

    The maximum triangle area follows the edge length ``1/density`` so the
    interior is refined as finely as the boundary.
    """

    name = "conforming"

    def triangulate(self, polygon, config: MeshConfig) -> Surface:
        max_area = 0.5 / float(config.density) ** 2
        args = f"pq{config.conforming_min_angle_deg:g}a{max_area:.10f}"

        chunks: List[trimesh.Trimesh] = []
        for part in _polygon_parts(polygon):
            try:
                verts, faces = trimesh.creation.triangulate_polygon(
                    part, triangle_args=args, engine="triangle"
                )
            except ImportError as exc:
                raise ConfigurationError(
                    "The 'conforming' mesher needs the 'triangle' package "
                    "(pip install shadowcast[conforming])"
                ) from exc
            chunks.append(
                trimesh.Trimesh(
                    vertices=np.column_stack([verts, np.zeros(len(verts))]),
                    faces=faces,
                    process=False,
                )
            )
        if not chunks:
            return Surface.empty()

        combined = _postprocess_mesh(trimesh.util.concatenate(chunks))
        return _planar_surface(combined.vertices[:, :2], combined.faces, config.z)


_MESHERS: Dict[str, PolygonMesher] = {
    BoundarySubdivisionMesher.name: BoundarySubdivisionMesher(),
    ConformingMesher.name: ConformingMesher(),
}


def get_mesher(name: str) -> PolygonMesher:
    """Look up a meshing strategy by name."""
    try:
        return _MESHERS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown mesher strategy {name!r}. "
            f"Supported strategies: {', '.join(repr(k) for k in _MESHERS)}."
        ) from None


def mesh_polygon(
    polygon: PolygonLike,
    config: Optional[MeshConfig] = None,
    mesher: Optional[PolygonMesher] = None,
) -> Surface:
    """Densify *polygon* and triangulate it into a planar Surface.

    Args:
        polygon: Shapely Polygon/MultiPolygon or a sequence of (x, y) points.
        config: Density, strategy and plane height.
        mesher: Explicit strategy instance; overrides ``config.strategy``.

    Returns:
        Surface lying in the plane z = ``config.z``.
    """
    if config is None:
        config = MeshConfig()
    config.validate()
    if mesher is None:
        mesher = get_mesher(config.strategy)

    dense = densify_polygon(polygon, config.density, config.max_predicted_size)
    if dense.is_empty:
        return Surface.empty()

    surface = mesher.triangulate(dense, config)
    logger.info(
        "Meshed polygon with %s strategy: %d vertices, %d faces (density %.3g)",
        mesher.name,
        len(surface.vertices),
        len(surface.faces),
        config.density,
    )
    return surface


# ─── Internal helpers ────────────────────────────────────────────────────────

def _planar_surface(points_2d: np.ndarray, faces, z: float) -> Surface:
    """Lift 2D points to z, drop degenerate faces and wind faces CCW."""
    faces = np.asarray(faces, dtype=np.int64).reshape(-1, 3)
    if len(points_2d) == 0 or len(faces) == 0:
        return Surface.empty()

    faces = faces[
        (faces[:, 0] != faces[:, 1])
        & (faces[:, 1] != faces[:, 2])
        & (faces[:, 0] != faces[:, 2])
    ]
    a = points_2d[faces[:, 0]]
    b = points_2d[faces[:, 1]]
    c = points_2d[faces[:, 2]]
    signed = (b[:, 0] - a[:, 0]) * (c[:, 1] - a[:, 1]) - (b[:, 1] - a[:, 1]) * (c[:, 0] - a[:, 0])
    faces = faces[signed != 0.0]
    flip = signed[signed != 0.0] < 0.0
    faces[flip] = faces[flip][:, ::-1]

    vertices = np.column_stack([points_2d, np.full(len(points_2d), float(z))])
    used = np.unique(faces)
    remap = np.full(len(vertices), -1, dtype=np.int64)
    remap[used] = np.arange(len(used))
    return Surface(vertices[used], remap[faces])


def _postprocess_mesh(mesh: trimesh.Trimesh) -> trimesh.Trimesh:
    """Normalize mesh topology after triangulation."""
    out = mesh.copy()
    out.merge_vertices(digits_vertex=9)
    out.update_faces(out.unique_faces())
    out.update_faces(out.nondegenerate_faces())
    out.remove_unreferenced_vertices()
    return out
