"""Contracts shared by the densifier, shadow projector and stereographic mapper."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence, Tuple, Union

import numpy as np
import trimesh
from shapely.geometry import MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry

PolygonLike = Union[Polygon, MultiPolygon, Sequence[Sequence[float]]]
Bounds3 = Tuple[Sequence[float], Sequence[float]]


class ShadowcastError(Exception):
    """Base exception for shadowcast errors."""
    pass


class ConfigurationError(ShadowcastError, ValueError):
    """An option value is not supported."""
    pass


class ResourceLimitError(ShadowcastError):
    """Predicted work exceeds the configured safety ceiling."""
    pass


class Axis(Enum):
    """Coordinate axis normal to a projection plane."""
    X = 0
    Y = 1
    Z = 2

    @classmethod
    def coerce(cls, value) -> "Axis":
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value.upper() in cls.__members__:
            return cls[value.upper()]
        if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
            if int(value) in (0, 1, 2):
                return cls(int(value))
        raise ConfigurationError(
            f"Unknown plane axis {value!r}. Supported axes: 'x', 'y', 'z' (or 0, 1, 2)."
        )


@dataclass(frozen=True)
class Plane:
    """Axis-aligned plane: all points whose ``axis`` coordinate equals ``offset``."""

    axis: Axis = Axis.Z
    offset: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "axis", Axis.coerce(self.axis))
        offset = float(self.offset)
        if not math.isfinite(offset):
            raise ConfigurationError(f"Plane offset must be finite, got {self.offset!r}")
        object.__setattr__(self, "offset", offset)

    @property
    def in_plane_axes(self) -> Tuple[int, int]:
        return tuple(i for i in range(3) if i != self.axis.value)


@dataclass(frozen=True)
class Surface:
    """Immutable triangulated geometry: (N, 3) vertices and (M, 3) face indices.

    Face winding defines the outward side. Arrays are copied and frozen on
    construction, so transforms always return a new Surface.
    """

    vertices: np.ndarray
    faces: np.ndarray

    def __post_init__(self):
        vertices = np.array(self.vertices, dtype=np.float64).reshape(-1, 3)
        faces = np.array(self.faces, dtype=np.int64).reshape(-1, 3)
        if len(faces):
            if faces.min() < 0 or faces.max() >= len(vertices):
                raise ValueError(
                    f"Face index out of range for {len(vertices)} vertices"
                )
            repeated = (
                (faces[:, 0] == faces[:, 1])
                | (faces[:, 1] == faces[:, 2])
                | (faces[:, 0] == faces[:, 2])
            )
            if np.any(repeated):
                raise ValueError(
                    f"{int(repeated.sum())} face(s) repeat a vertex index"
                )
        vertices.setflags(write=False)
        faces.setflags(write=False)
        object.__setattr__(self, "vertices", vertices)
        object.__setattr__(self, "faces", faces)

    @classmethod
    def empty(cls) -> "Surface":
        return cls(np.zeros((0, 3), dtype=float), np.zeros((0, 3), dtype=int))

    @classmethod
    def from_trimesh(cls, mesh: trimesh.Trimesh) -> "Surface":
        return cls(mesh.vertices, mesh.faces)

    @property
    def is_empty(self) -> bool:
        return len(self.faces) == 0

    def to_trimesh(self) -> trimesh.Trimesh:
        """Exchange format for renderers and exporters (no reprocessing)."""
        return trimesh.Trimesh(
            vertices=np.array(self.vertices),
            faces=np.array(self.faces),
            process=False,
        )

    def free_boundary_edges(self) -> np.ndarray:
        """Directed (a, b) edges used by exactly one face, in face winding order."""
        if self.is_empty:
            return np.zeros((0, 2), dtype=np.int64)
        edges = self.faces[:, [0, 1, 1, 2, 2, 0]].reshape(-1, 2)
        edges_sorted = np.sort(edges, axis=1)
        unique = trimesh.grouping.group_rows(edges_sorted, require_count=1)
        return edges[np.sort(unique)]

    def apply_transform(self, matrix: np.ndarray) -> "Surface":
        """Return a copy with a 4x4 homogeneous transform applied to vertices."""
        matrix = np.asarray(matrix, dtype=float)
        if matrix.shape != (4, 4):
            raise ValueError(f"Transform must be 4x4, got {matrix.shape}")
        if len(self.vertices) == 0:
            return self
        moved = trimesh.transformations.transform_points(self.vertices, matrix)
        return Surface(moved, self.faces)


@dataclass(frozen=True)
class MeshConfig:
    """Configuration for polygon densification and triangulation."""

    density: float = 10.0  # points per unit length
    strategy: str = "boundary"  # "boundary" | "conforming"
    z: float = 0.0
    max_predicted_size: float = 100_000.0
    conforming_min_angle_deg: float = 30.0

    def validate(self) -> None:
        if not math.isfinite(self.density) or self.density <= 0:
            raise ConfigurationError(
                f"density must be a finite value > 0, got {self.density!r}"
            )
        if not math.isfinite(self.z):
            raise ConfigurationError(f"z must be finite, got {self.z!r}")
        if self.max_predicted_size <= 0:
            raise ConfigurationError(
                f"max_predicted_size must be > 0, got {self.max_predicted_size!r}"
            )
        if not 0.0 < self.conforming_min_angle_deg <= 34.0:
            # Triangle's quality refinement may not terminate above ~34 degrees
            raise ConfigurationError(
                f"conforming_min_angle_deg must be within (0, 34], "
                f"got {self.conforming_min_angle_deg!r}"
            )


@dataclass(frozen=True)
class ShadowConfig:
    """Configuration for shadow projection.

    ``attenuation_radius=None`` auto-computes the radius as
    ``attenuation_auto_factor`` times the light's distance from the origin.
    Attenuation weights are only produced when ``compute_attenuation`` is set.
    """

    plane: Plane = field(default_factory=Plane)
    compute_attenuation: bool = False
    attenuation_radius: Optional[float] = None
    attenuation_auto_factor: float = 2.0
    far_distance: float = 1000.0  # relocation distance when attenuation is off

    def validate(self) -> None:
        if not isinstance(self.plane, Plane):
            raise ConfigurationError(
                f"plane must be a Plane, got {type(self.plane).__name__}"
            )
        if self.attenuation_radius is not None:
            radius = float(self.attenuation_radius)
            if not math.isfinite(radius) or radius < 0:
                raise ConfigurationError(
                    f"attenuation_radius must be finite and >= 0, got {self.attenuation_radius!r}"
                )
        if not math.isfinite(self.attenuation_auto_factor) or self.attenuation_auto_factor <= 0:
            raise ConfigurationError(
                f"attenuation_auto_factor must be > 0, got {self.attenuation_auto_factor!r}"
            )
        if not math.isfinite(self.far_distance) or self.far_distance <= 0:
            raise ConfigurationError(
                f"far_distance must be > 0, got {self.far_distance!r}"
            )


STEREOGRAPHIC_STYLES = ("north", "center")


@dataclass(frozen=True)
class StereographicConfig:
    """Configuration for building a surface whose shadow matches a polygon."""

    style: str = "north"  # "north" | "center"
    radius: float = 1.0
    solid_shell_ratio: float = 0.0  # 0 = surface only, 1 = filled to the centre
    add_feet: bool = False
    foot_radius_ratio: float = 0.5  # foot radius as a fraction of sphere radius
    scale: Tuple[float, float] = (1.0, 1.0)
    mesh: MeshConfig = field(default_factory=MeshConfig)

    def validate(self) -> None:
        if self.style not in STEREOGRAPHIC_STYLES:
            raise ConfigurationError(
                f"Unknown projection style {self.style!r}. "
                f"Supported styles: {', '.join(repr(s) for s in STEREOGRAPHIC_STYLES)}."
            )
        if not math.isfinite(self.radius) or self.radius <= 0:
            raise ConfigurationError(f"radius must be > 0, got {self.radius!r}")
        if not 0.0 <= self.solid_shell_ratio <= 1.0:
            raise ConfigurationError(
                f"solid_shell_ratio must be within [0, 1], got {self.solid_shell_ratio!r}"
            )
        if len(self.scale) != 2 or not all(
            math.isfinite(s) and s != 0 for s in self.scale
        ):
            raise ConfigurationError(
                f"scale must be two finite non-zero factors, got {self.scale!r}"
            )
        if not math.isfinite(self.foot_radius_ratio) or self.foot_radius_ratio < 0:
            raise ConfigurationError(
                f"foot_radius_ratio must be >= 0, got {self.foot_radius_ratio!r}"
            )
        self.mesh.validate()


def as_light(light: Sequence[float]) -> np.ndarray:
    """Coerce a light position to a finite (3,) float array."""
    arr = np.asarray(light, dtype=float).reshape(-1)
    if arr.shape != (3,) or not np.all(np.isfinite(arr)):
        raise ConfigurationError(f"Light must be a finite 3D point, got {light!r}")
    return arr


def as_polygon(polygon: PolygonLike) -> Union[Polygon, MultiPolygon]:
    """Accept shapely polygons as-is; wrap a coordinate sequence in a Polygon."""
    if isinstance(polygon, (Polygon, MultiPolygon)):
        return polygon
    if isinstance(polygon, BaseGeometry):
        raise ConfigurationError(
            f"Expected a Polygon or MultiPolygon, got {polygon.geom_type}"
        )
    coords = [tuple(map(float, p[:2])) for p in polygon]
    if len(coords) < 3:
        return Polygon()
    return Polygon(coords)
