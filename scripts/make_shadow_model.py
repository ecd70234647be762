#!/usr/bin/env python3
"""Build a 3D model whose point-light shadow matches a 2D outline."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from shapely.geometry import shape

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shadowcast import (
    MeshConfig,
    ShadowConfig,
    StereographicConfig,
    polygon_to_shadow_surface,
    project_shadow,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Map a GeoJSON outline onto a sphere that casts it as a shadow"
    )
    parser.add_argument(
        "--outline",
        required=True,
        help="GeoJSON file holding a Polygon or MultiPolygon geometry",
    )
    parser.add_argument(
        "--out", required=True, help="Output mesh path (.stl/.obj/.ply)"
    )
    parser.add_argument(
        "--style", default="north", help="Projection style: north or center"
    )
    parser.add_argument("--radius", type=float, default=1.0, help="Sphere radius")
    parser.add_argument(
        "--shell-ratio",
        type=float,
        default=0.0,
        help="Shell thickness as a fraction of the radius (0 = surface only)",
    )
    parser.add_argument(
        "--add-feet",
        action="store_true",
        help="Flatten the underside into a foot (shell mode only)",
    )
    parser.add_argument(
        "--foot-radius-ratio",
        type=float,
        default=0.5,
        help="Foot radius as a fraction of the sphere radius",
    )
    parser.add_argument(
        "--scale",
        type=float,
        nargs=2,
        default=(1.0, 1.0),
        metavar=("SX", "SY"),
        help="Anisotropic scale applied to the outline",
    )
    parser.add_argument(
        "--density", type=float, default=10.0, help="Boundary points per unit length"
    )
    parser.add_argument(
        "--mesher",
        default="boundary",
        help="Meshing strategy: boundary or conforming",
    )
    parser.add_argument(
        "--preview",
        default=None,
        help="Optional PNG path for a static preview of the model and its shadow",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logs"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    with open(args.outline, "r", encoding="utf-8") as f:
        payload = json.load(f)
    if payload.get("type") == "Feature":
        payload = payload["geometry"]
    outline = shape(payload)

    config = StereographicConfig(
        style=args.style,
        radius=float(args.radius),
        solid_shell_ratio=float(args.shell_ratio),
        add_feet=bool(args.add_feet),
        foot_radius_ratio=float(args.foot_radius_ratio),
        scale=(float(args.scale[0]), float(args.scale[1])),
        mesh=MeshConfig(density=float(args.density), strategy=args.mesher),
    )
    surface, light_height = polygon_to_shadow_surface(outline, config)

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    mesh = surface.to_trimesh()
    mesh.export(str(out_path))

    light = [0.0, 0.0, light_height]
    shadow, weights = project_shadow(
        surface, light, ShadowConfig(compute_attenuation=True)
    )
    lower = shadow.vertices.min(axis=0) if len(shadow.vertices) else (0.0, 0.0, 0.0)
    upper = shadow.vertices.max(axis=0) if len(shadow.vertices) else (0.0, 0.0, 0.0)

    print(f"Mesh: {out_path}")
    print(f"Style: {config.style}")
    print(f"Light height: {light_height:.6g}")
    print(f"Vertices: {len(surface.vertices)}")
    print(f"Faces: {len(surface.faces)}")
    print(f"Watertight: {mesh.is_watertight}")
    print(
        f"Shadow bounds: ({lower[0]:.4g}, {lower[1]:.4g}) - ({upper[0]:.4g}, {upper[1]:.4g})"
    )
    if args.preview:
        from shadowcast.preview import render_shadow_preview

        preview_path = render_shadow_preview(surface, light, [(shadow, weights)], args.preview)
        print(f"Preview: {preview_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
