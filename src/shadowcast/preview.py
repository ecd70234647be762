"""
Static preview of a surface, its light and the shadows it casts.

Shadows are drawn as translucent overlays whose opacity follows the
attenuation weights when present. Uses matplotlib with the Agg backend so it
works headless.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np

from shadowcast.contracts import Bounds3, Surface, as_light
from shadowcast.projection import trim_faces_to_bounds

logger = logging.getLogger(__name__)


def _shadow_facecolors(
    shadow: Surface,
    weights: Optional[np.ndarray],
    opacity: float,
) -> np.ndarray:
    colors = np.zeros((len(shadow.faces), 4))
    if weights is None:
        colors[:, 3] = opacity
    else:
        colors[:, 3] = opacity * np.asarray(weights)[shadow.faces].mean(axis=1)
    return colors


def render_shadow_preview(
    surface: Surface,
    light: Sequence[float],
    shadows: Sequence[Tuple[Surface, Optional[np.ndarray]]],
    output_path: str,
    *,
    limits: Optional[Bounds3] = None,
    surface_opacity: float = 0.6,
    shadow_opacity: float = 0.5,
    elev: float = 25.0,
    azim: float = 35.0,
    dpi: int = 150,
) -> str:
    """Render *surface* and its *shadows* to a PNG at *output_path*.

    ``shadows`` takes the ``(shadow, weights)`` pairs returned by
    :func:`shadowcast.project_shadow` or :attr:`ShadowSession.shadows`.
    Shadow faces entirely outside *limits* are dropped, which keeps vertices
    pushed far out along the plane from swamping the view.
    Returns the absolute path of the written file.
    """
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt
    from mpl_toolkits.mplot3d.art3d import Poly3DCollection

    light = as_light(light)
    fig = plt.figure(figsize=(8, 6))
    ax = fig.add_subplot(111, projection="3d")
    bounds: List[np.ndarray] = [light[None, :]]

    for shadow, weights in shadows:
        if limits is not None:
            shadow = trim_faces_to_bounds(shadow, limits)
        if shadow.is_empty:
            continue
        ax.add_collection3d(Poly3DCollection(
            shadow.vertices[shadow.faces],
            facecolors=_shadow_facecolors(shadow, weights, shadow_opacity),
            edgecolors="none",
        ))
        bounds.append(shadow.vertices[np.unique(shadow.faces)])

    if not surface.is_empty:
        ax.add_collection3d(Poly3DCollection(
            surface.vertices[surface.faces],
            facecolors=(0.85, 0.55, 0.2, surface_opacity),
            edgecolors=(0.4, 0.25, 0.1, surface_opacity * 0.3),
            linewidths=0.1,
        ))
        bounds.append(surface.vertices)

    ax.scatter([light[0]], [light[1]], [light[2]], color="gold", s=60, marker="*")

    cloud = np.vstack(bounds)
    mins, maxs = cloud.min(axis=0), cloud.max(axis=0)
    center = (mins + maxs) * 0.5
    radius = max(float(np.max(maxs - mins)) * 0.55, 1.0)
    ax.set_xlim(center[0] - radius, center[0] + radius)
    ax.set_ylim(center[1] - radius, center[1] + radius)
    ax.set_zlim(center[2] - radius, center[2] + radius)

    ax.set_xlabel("X")
    ax.set_ylabel("Y")
    ax.set_zlabel("Z")
    ax.view_init(elev=elev, azim=azim)
    fig.tight_layout()

    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(str(out), dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    logger.info("Shadow preview saved: %s", out)
    return str(out.resolve())
