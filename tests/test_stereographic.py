"""Tests for shadow-driven sphere surface design."""
import numpy as np
import pytest
from shapely import affinity
from shapely.geometry import Polygon

from shadowcast.contracts import (
    ConfigurationError,
    MeshConfig,
    StereographicConfig,
)
from shadowcast.projection import project_shadow
from shadowcast.stereographic import (
    build_solid_shell,
    map_points_to_sphere,
    polygon_to_shadow_surface,
    shadow_outline_error,
)


def _outward_fraction(surface, center) -> float:
    mesh = surface.to_trimesh()
    radial = mesh.triangles_center - np.asarray(center)
    return float(np.mean(np.einsum("ij,ij->i", mesh.face_normals, radial) > 0))


class TestMapPointsToSphere:
    """Test the closed-form inverse projections."""

    @pytest.mark.parametrize("style", ["north", "center"])
    def test_points_land_on_unit_sphere(self, style):
        rng = np.random.default_rng(7)
        pts = rng.uniform(-5, 5, size=(200, 2))
        sphere, _ = map_points_to_sphere(pts, style)
        assert sphere.shape == (200, 3)
        assert np.allclose(np.linalg.norm(sphere, axis=1), 1.0)

    def test_origin_maps_to_south_pole(self):
        for style in ("north", "center"):
            sphere, _ = map_points_to_sphere(np.zeros((1, 2)), style)
            assert np.allclose(sphere[0], [0.0, 0.0, -1.0])

    def test_unit_light_heights(self):
        assert map_points_to_sphere(np.zeros((1, 2)), "north")[1] == 1.0
        assert map_points_to_sphere(np.zeros((1, 2)), "center")[1] == 0.0

    def test_unknown_style(self):
        with pytest.raises(ConfigurationError, match="'north', 'center'"):
            map_points_to_sphere(np.zeros((1, 2)), "gnomonic")


class TestPolygonToShadowSurface:
    """Test surface construction and the shadow round trip."""

    def test_north_light_height_unit_radius(self, centered_square):
        _, light_height = polygon_to_shadow_surface(centered_square)
        assert light_height == 2.0

    def test_light_height_scales_with_radius(self, centered_square):
        north = StereographicConfig(style="north", radius=2.0)
        center = StereographicConfig(style="center", radius=2.0)
        assert polygon_to_shadow_surface(centered_square, north)[1] == 4.0
        assert polygon_to_shadow_surface(centered_square, center)[1] == 2.0

    @pytest.mark.parametrize("style", ["north", "center"])
    def test_round_trip_within_density(self, centered_square, style):
        density = 10
        config = StereographicConfig(style=style, mesh=MeshConfig(density=density))
        surface, light_height = polygon_to_shadow_surface(centered_square, config)
        error = shadow_outline_error(surface, light_height, centered_square)
        assert error <= 1.0 / density

    def test_round_trip_boundary_vertices_are_exact(self, centered_square):
        surface, light_height = polygon_to_shadow_surface(centered_square)
        shadow, _ = project_shadow(surface, [0.0, 0.0, light_height])
        boundary = np.unique(surface.free_boundary_edges())
        pts = shadow.vertices[boundary][:, :2]
        # Every boundary vertex lies on the outline edge |x| = 0.5 or |y| = 0.5
        on_edge = np.isclose(np.max(np.abs(pts), axis=1), 0.5, atol=1e-9)
        assert np.all(on_edge)

    def test_round_trip_with_hole(self, square_with_hole):
        config = StereographicConfig(mesh=MeshConfig(density=8))
        surface, light_height = polygon_to_shadow_surface(square_with_hole, config)
        error = shadow_outline_error(surface, light_height, square_with_hole)
        assert error <= 1.0 / 8

    def test_round_trip_larger_radius(self, centered_square):
        config = StereographicConfig(radius=2.0)
        surface, light_height = polygon_to_shadow_surface(centered_square, config)
        error = shadow_outline_error(surface, light_height, centered_square, radius=2.0)
        assert error <= 0.1

    def test_scale_is_applied_before_mapping(self, centered_square):
        config = StereographicConfig(scale=(2.0, 1.0))
        surface, light_height = polygon_to_shadow_surface(centered_square, config)
        shadow, _ = project_shadow(surface, [0.0, 0.0, light_height])
        assert shadow.vertices[:, 0].min() == pytest.approx(-1.0)
        assert shadow.vertices[:, 0].max() == pytest.approx(1.0)
        assert shadow.vertices[:, 1].max() == pytest.approx(0.5)

        scaled = affinity.scale(centered_square, xfact=2.0, yfact=1.0, origin=(0, 0))
        assert shadow_outline_error(surface, light_height, scaled) <= 0.1

    @pytest.mark.parametrize("style", ["north", "center"])
    def test_outline_error_for_l_shape(self, style):
        outline = Polygon([(-1, -1), (1, -1), (1, 0), (0, 0), (0, 1), (-1, 1)])
        config = StereographicConfig(style=style, mesh=MeshConfig(density=10))
        surface, light_height = polygon_to_shadow_surface(outline, config)
        error = shadow_outline_error(surface, light_height, outline)
        assert isinstance(error, float)
        assert error == pytest.approx(0.05, abs=1e-6)

    def test_sphere_rests_on_ground(self, centered_square):
        config = StereographicConfig(radius=1.5)
        surface, _ = polygon_to_shadow_surface(centered_square, config)
        assert surface.vertices[:, 2].min() >= -1e-12
        dist = np.linalg.norm(surface.vertices - [0.0, 0.0, 1.5], axis=1)
        assert np.allclose(dist, 1.5)

    def test_faces_point_outward(self, centered_square):
        for style in ("north", "center"):
            surface, _ = polygon_to_shadow_surface(
                centered_square, StereographicConfig(style=style)
            )
            assert _outward_fraction(surface, [0.0, 0.0, 1.0]) == 1.0

    def test_unknown_style_rejected_before_meshing(self):
        huge = Polygon([(0, 0), (1000, 0), (1000, 1000), (0, 1000)])
        with pytest.raises(ConfigurationError, match="'north', 'center'"):
            polygon_to_shadow_surface(huge, StereographicConfig(style="south"))

    def test_empty_polygon(self):
        surface, light_height = polygon_to_shadow_surface(Polygon())
        assert surface.is_empty
        assert light_height == 2.0

    def test_outline_error_needs_boundary(self, tetrahedron, centered_square):
        with pytest.raises(ValueError):
            shadow_outline_error(tetrahedron, 2.0, centered_square)


class TestSolidShell:
    """Test thickening into a printable shell."""

    def test_shell_is_closed_and_consistent(self, centered_square):
        flat_config = StereographicConfig(mesh=MeshConfig(density=6))
        thin, _ = polygon_to_shadow_surface(centered_square, flat_config)
        config = StereographicConfig(solid_shell_ratio=0.1, mesh=MeshConfig(density=6))
        solid, light_height = polygon_to_shadow_surface(centered_square, config)

        assert light_height == 2.0
        assert len(solid.vertices) == 2 * len(thin.vertices)
        mesh = solid.to_trimesh()
        assert mesh.is_watertight
        assert mesh.is_winding_consistent
        assert mesh.volume > 0

    def test_shell_with_hole_is_closed(self, square_with_hole):
        config = StereographicConfig(solid_shell_ratio=0.2, mesh=MeshConfig(density=4))
        solid, _ = polygon_to_shadow_surface(square_with_hole, config)
        mesh = solid.to_trimesh()
        assert mesh.is_watertight
        assert mesh.is_winding_consistent

    def test_inner_shell_is_scaled(self, centered_square):
        config = StereographicConfig(solid_shell_ratio=0.25, mesh=MeshConfig(density=4))
        solid, _ = polygon_to_shadow_surface(centered_square, config)
        n = len(solid.vertices) // 2
        centered = solid.vertices - [0.0, 0.0, 1.0]
        assert np.allclose(np.linalg.norm(centered[:n], axis=1), 1.0)
        assert np.allclose(np.linalg.norm(centered[n:], axis=1), 0.75)

    def test_outer_shadow_unchanged_by_shell(self, centered_square):
        config = StereographicConfig(solid_shell_ratio=0.1)
        solid, light_height = polygon_to_shadow_surface(centered_square, config)
        n = len(solid.vertices) // 2
        shadow, _ = project_shadow(solid, [0.0, 0.0, light_height])
        outer = shadow.vertices[:n, :2]
        assert np.all(np.max(np.abs(outer), axis=1) <= 0.5 + 1e-9)

    def test_feet_flatten_underside(self):
        disc = Polygon([(-0.9, -0.9), (0.9, -0.9), (0.9, 0.9), (-0.9, 0.9)])
        config = StereographicConfig(
            solid_shell_ratio=0.1,
            add_feet=True,
            foot_radius_ratio=0.8,
            mesh=MeshConfig(density=5),
        )
        solid, _ = polygon_to_shadow_surface(disc, config)
        n = len(solid.vertices) // 2
        outer = solid.vertices[:n]
        in_foot = np.hypot(outer[:, 0], outer[:, 1]) <= 0.8
        assert in_foot.any()
        assert np.all(outer[in_foot, 2] == 0.0)
        assert np.all(outer[~in_foot, 2] > 0.0)
        assert solid.to_trimesh().is_watertight

    def test_feet_ignored_without_shell(self, centered_square):
        plain, _ = polygon_to_shadow_surface(centered_square)
        footed, _ = polygon_to_shadow_surface(
            centered_square, StereographicConfig(add_feet=True)
        )
        assert np.array_equal(plain.vertices, footed.vertices)

    def test_build_solid_shell_directly(self):
        outer = np.array([
            [0.0, 0.0, -1.0],
            [0.6, 0.0, -0.8],
            [0.0, 0.6, -0.8],
        ])
        solid = build_solid_shell(outer, np.array([[0, 2, 1]]), 0.5)
        assert len(solid.vertices) == 6
        # top, bottom, and two triangles per boundary edge
        assert len(solid.faces) == 2 + 2 * 3
        assert solid.to_trimesh().is_watertight
