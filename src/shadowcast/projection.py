"""
Point-light shadow projection onto axis-aligned planes.

Each vertex is cast along the ray from the light onto the plane by a
perspective divide. Vertices behind the plane are clamped onto it, and
vertices beyond the light (or with a singular divide) are pushed far out
along their in-plane direction so partial triangles at the edges of the
shadow still look plausible. Face connectivity is never changed.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

import numpy as np

from shadowcast.contracts import (
    Bounds3,
    ShadowConfig,
    Surface,
    as_light,
)

logger = logging.getLogger(__name__)

# Ceiling for relocation and auto-radius distances; keeps products finite.
_MAX_DISTANCE = float(np.finfo(float).max) / 4.0


def resolve_attenuation_radius(light: Sequence[float], config: ShadowConfig) -> float:
    """Effective attenuation radius; 0 means attenuation is off."""
    if not config.compute_attenuation:
        return 0.0
    if config.attenuation_radius is not None:
        return min(float(config.attenuation_radius), _MAX_DISTANCE)

    with np.errstate(over="ignore"):
        radius = float(np.linalg.norm(as_light(light))) * config.attenuation_auto_factor
    radius = min(radius, _MAX_DISTANCE)
    if radius <= 0.0:
        logger.warning(
            "Auto attenuation radius is 0 (light at origin); attenuation disabled"
        )
    return radius


def attenuation_weights(
    points: np.ndarray,
    light: Sequence[float],
    radius: float,
) -> np.ndarray:
    """Fade weight per point: 1 at the light, 0 at *radius* and beyond."""
    if radius <= 0.0:
        raise ValueError(f"Attenuation radius must be > 0, got {radius}")
    with np.errstate(over="ignore"):
        dist = np.linalg.norm(np.asarray(points, dtype=float) - as_light(light), axis=1)
    weights = 1.0 - np.minimum(dist, radius) / radius
    return np.clip(weights, 0.0, 1.0)


def project_shadow(
    surface: Surface,
    light: Sequence[float],
    config: Optional[ShadowConfig] = None,
) -> Tuple[Surface, Optional[np.ndarray]]:
    """Cast the shadow of *surface* from a point *light* onto ``config.plane``.

    Args:
        surface: Geometry casting the shadow.
        light: (3,) light position.
        config: Plane and attenuation options.

    Returns:
        (shadow_surface, weights). ``weights`` holds one value in [0, 1] per
        shadow vertex when attenuation is active, otherwise ``None``. A
        surface without faces gives an empty shadow and no weights.
    """
    if config is None:
        config = ShadowConfig()
    config.validate()
    light = as_light(light)
    radius = resolve_attenuation_radius(light, config)

    if surface.is_empty:
        logger.debug("No faces to cast; returning empty shadow")
        return Surface.empty(), None

    plane = config.plane
    axis = plane.axis.value
    in_plane = list(plane.in_plane_axes)

    # Work in a frame where the light's foot on the plane is the origin.
    offset = light.copy()
    offset[axis] = plane.offset
    light_n = float(light[axis] - plane.offset)

    rel = surface.vertices - offset
    vert_n = rel[:, axis]

    shadow = np.zeros_like(rel)
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        scale = light_n / (light_n - vert_n)
        shadow[:, in_plane] = rel[:, in_plane] * scale[:, None]

    if light_n > 0:
        beyond = vert_n > light_n
        wrong_side = vert_n < 0
    else:
        beyond = vert_n < light_n
        wrong_side = vert_n > 0
    beyond |= ~np.all(np.isfinite(shadow), axis=1)

    if np.any(wrong_side):
        shadow[wrong_side] = rel[wrong_side]

    if np.any(beyond):
        far = min(2.0 * radius if radius > 0.0 else config.far_distance, _MAX_DISTANCE)
        direction = rel[np.ix_(beyond, in_plane)]
        length = np.linalg.norm(direction, axis=1)
        unit = np.zeros_like(direction)
        has_dir = length > 0.0
        unit[has_dir] = direction[has_dir] / length[has_dir, None]
        shadow[np.ix_(beyond, in_plane)] = unit * far

    logger.debug(
        "Shadow on %s=%g: %d clamped, %d relocated of %d vertices",
        plane.axis.name.lower(),
        plane.offset,
        int(np.count_nonzero(wrong_side & ~beyond)),
        int(np.count_nonzero(beyond)),
        len(rel),
    )

    shadow += offset
    shadow[:, axis] = plane.offset
    shadow_surface = Surface(shadow, surface.faces)

    weights = None
    if radius > 0.0:
        weights = attenuation_weights(shadow, light, radius)
    return shadow_surface, weights


def suggest_light_position(surface: Surface) -> np.ndarray:
    """Default light: above and behind the centre of the surface's bounds."""
    if len(surface.vertices) == 0:
        raise ValueError("Cannot place a light for a surface without vertices")
    lower = surface.vertices.min(axis=0)
    upper = surface.vertices.max(axis=0)
    return (lower + upper) / 2.0 * np.array([1.0, 1.0, 2.0])


def trim_faces_to_bounds(surface: Surface, bounds: Bounds3) -> Surface:
    """Keep only faces with at least one vertex inside the axis-aligned *bounds*.

    Vertices are kept as-is so per-vertex data (e.g. attenuation weights)
    stays aligned with the result.
    """
    lower = np.asarray(bounds[0], dtype=float)
    upper = np.asarray(bounds[1], dtype=float)
    if surface.is_empty:
        return surface
    inside = np.all((surface.vertices >= lower) & (surface.vertices <= upper), axis=1)
    keep = np.any(inside[surface.faces], axis=1)
    return Surface(surface.vertices, surface.faces[keep])
