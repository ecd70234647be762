"""
Design a 3D surface whose shadow matches a 2D outline.

The outline is densified and triangulated, then every point is mapped onto a
sphere with a closed-form inverse projection. Lit from the matching light
position, the sphere's shadow on z = 0 reproduces the outline. Optionally the
surface is thickened into a closed shell that can be 3D printed.

Projection styles:
    north  - inverse stereographic projection, light at the north pole.
    center - central projection, light at the sphere's centre.
"""
from __future__ import annotations

import logging
from typing import Optional, Tuple

import numpy as np
import shapely
from shapely import affinity
from shapely.geometry import MultiPoint

from shadowcast.contracts import (
    ConfigurationError,
    PolygonLike,
    ShadowConfig,
    StereographicConfig,
    STEREOGRAPHIC_STYLES,
    Surface,
    as_polygon,
)
from shadowcast.densify import mesh_polygon
from shadowcast.projection import project_shadow

logger = logging.getLogger(__name__)


def map_points_to_sphere(points_2d: np.ndarray, style: str = "north") -> Tuple[np.ndarray, float]:
    """Map plane points onto the unit sphere centred at the origin.

    Returns:
        (sphere_points, unit_light_height) where the light height is measured
        from the sphere's centre.
    """
    pts = np.asarray(points_2d, dtype=float).reshape(-1, 2)
    x = pts[:, 0]
    y = pts[:, 1]

    if style == "north":
        # https://en.wikipedia.org/wiki/Stereographic_projection
        xh = x / 2.0
        yh = y / 2.0
        h = xh ** 2 + yh ** 2
        sphere = np.column_stack([2 * xh / (1 + h), 2 * yh / (1 + h), (h - 1) / (h + 1)])
        return sphere, 1.0

    if style == "center":
        alpha = np.arctan2(y, x)
        d = np.hypot(x, y)
        beta = np.arctan2(1.0, d)
        sphere = np.column_stack([
            np.cos(alpha) * np.cos(beta),
            np.sin(alpha) * np.cos(beta),
            -np.sin(beta),
        ])
        return sphere, 0.0

    raise ConfigurationError(
        f"Unknown projection style {style!r}. "
        f"Supported styles: {', '.join(repr(s) for s in STEREOGRAPHIC_STYLES)}."
    )


def polygon_to_shadow_surface(
    polygon: PolygonLike,
    config: Optional[StereographicConfig] = None,
) -> Tuple[Surface, float]:
    """Build a sphere patch whose shadow from ``(0, 0, light_height)`` is *polygon*.

    The polygon is first scaled by ``config.scale`` about the origin. The
    sphere rests on z = 0 with its centre at z = radius.

    Returns:
        (surface, light_height)
    """
    if config is None:
        config = StereographicConfig()
    config.validate()

    polygon = as_polygon(polygon)
    sx, sy = config.scale
    if (sx, sy) != (1.0, 1.0) and not polygon.is_empty:
        polygon = affinity.scale(polygon, xfact=sx, yfact=sy, origin=(0.0, 0.0))

    flat = mesh_polygon(polygon, config.mesh)
    sphere, unit_light = map_points_to_sphere(flat.vertices[:, :2], config.style)
    radius = float(config.radius)
    outer = sphere * radius

    # Planar faces are CCW; the map flips orientation, so reverse them to face outward.
    faces = flat.faces[:, ::-1]

    if config.solid_shell_ratio > 0:
        surface = build_solid_shell(
            outer,
            faces,
            config.solid_shell_ratio,
            foot_radius=config.foot_radius_ratio * radius if config.add_feet else None,
            radius=radius,
        )
    else:
        surface = Surface(outer, faces)

    # Rest the sphere on the z = 0 plane.
    surface = Surface(surface.vertices + np.array([0.0, 0.0, radius]), surface.faces)
    light_height = unit_light * radius + radius

    logger.info(
        "Mapped polygon to %s sphere: %d vertices, %d faces, light height %.4g",
        config.style,
        len(surface.vertices),
        len(surface.faces),
        light_height,
    )
    return surface, light_height


def build_solid_shell(
    outer: np.ndarray,
    faces: np.ndarray,
    shell_ratio: float,
    foot_radius: Optional[float] = None,
    radius: float = 1.0,
) -> Surface:
    """Thicken a sphere patch centred at the origin into a closed solid.

    The inner shell is the outer one pulled toward the centre by
    ``1 - shell_ratio``. Both shells are joined along the free boundary.

    Args:
        outer: (N, 3) outer shell points, sphere centred at the origin.
        faces: (M, 3) outward-facing outer faces.
        shell_ratio: Thickness as a fraction of the radius, in (0, 1].
        foot_radius: If set, outer points within this distance of the z axis
            on the underside are flattened to z = -radius.
        radius: Sphere radius, used for the foot plane.
    """
    outer = np.array(outer, dtype=float)
    faces = np.asarray(faces, dtype=np.int64)
    n = len(outer)
    inner = outer * (1.0 - shell_ratio)

    if foot_radius is not None:
        feet = (np.hypot(outer[:, 0], outer[:, 1]) <= foot_radius) & (outer[:, 2] < 0)
        outer[feet, 2] = -radius
        logger.debug("Flattened %d vertices into feet", int(np.count_nonzero(feet)))

    edges = Surface(outer, faces).free_boundary_edges()
    a = edges[:, 0]
    b = edges[:, 1]
    sides = np.vstack([
        np.column_stack([b, a, b + n]),
        np.column_stack([a, a + n, b + n]),
    ])

    vertices = np.vstack([outer, inner])
    all_faces = np.vstack([faces, faces[:, ::-1] + n, sides])
    return Surface(vertices, all_faces)


def shadow_outline_error(
    surface: Surface,
    light_height: float,
    polygon: PolygonLike,
    radius: float = 1.0,
) -> float:
    """Hausdorff distance between the surface's shadow boundary and *polygon*.

    Only free-boundary vertices of *surface* are projected, from a light at
    ``(0, 0, light_height)`` onto z = 0. The shadow of a sphere of *radius*
    is the outline scaled by *radius*, so it is scaled back before comparing.
    *polygon* should already include any ``StereographicConfig.scale``.
    """
    polygon = as_polygon(polygon)
    edges = surface.free_boundary_edges()
    if len(edges) == 0 or polygon.is_empty:
        raise ValueError("Surface has no free boundary or polygon is empty")

    shadow, _ = project_shadow(surface, [0.0, 0.0, light_height], ShadowConfig())
    boundary_pts = shadow.vertices[np.unique(edges)][:, :2] / float(radius)
    return float(
        shapely.hausdorff_distance(MultiPoint(boundary_pts), polygon.boundary, densify=0.05)
    )
