"""Public API for point-light shadow casting and shadow-driven surface design."""

from shadowcast.contracts import (
    Axis,
    ConfigurationError,
    MeshConfig,
    Plane,
    ResourceLimitError,
    ShadowConfig,
    ShadowcastError,
    StereographicConfig,
    Surface,
)
from shadowcast.densify import (
    BoundarySubdivisionMesher,
    ConformingMesher,
    PolygonMesher,
    densify_polygon,
    get_mesher,
    mesh_polygon,
)
from shadowcast.preview import render_shadow_preview
from shadowcast.projection import project_shadow, suggest_light_position, trim_faces_to_bounds
from shadowcast.session import ShadowSession
from shadowcast.stereographic import (
    build_solid_shell,
    polygon_to_shadow_surface,
    shadow_outline_error,
)

__all__ = [
    "Axis",
    "BoundarySubdivisionMesher",
    "ConfigurationError",
    "ConformingMesher",
    "MeshConfig",
    "Plane",
    "PolygonMesher",
    "ResourceLimitError",
    "ShadowConfig",
    "ShadowSession",
    "ShadowcastError",
    "StereographicConfig",
    "Surface",
    "build_solid_shell",
    "densify_polygon",
    "get_mesher",
    "mesh_polygon",
    "polygon_to_shadow_surface",
    "project_shadow",
    "render_shadow_preview",
    "shadow_outline_error",
    "suggest_light_position",
    "trim_faces_to_bounds",
]
