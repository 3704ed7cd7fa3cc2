"""
Primitive solids for Primitive scene nodes.

Parameter names follow the scene document (``radiusTop``, ``widthSegments``
...). Every primitive is centred on the origin with its height along Z.
"""

import numpy as np
import trimesh

from .constants import PRIMITIVE_DEFAULTS
from .mesh import Mesh


def _param(params, shape, key):
    value = params.get(key)
    if value is None:
        return PRIMITIVE_DEFAULTS[shape][key]
    return value


def create_box(params):
    extents = [
        _param(params, 'box', 'width'),
        _param(params, 'box', 'depth'),
        _param(params, 'box', 'height'),
    ]
    return trimesh.creation.box(extents=extents)


def create_cylinder(params):
    """
    Cylinder or truncated cone.

    Revolves the side profile from the bottom centre, out to the bottom
    radius, up to the top radius and back to the axis, so unequal radii
    produce a frustum with outward facing normals.
    """
    top = _param(params, 'cylinder', 'radiusTop')
    bottom = _param(params, 'cylinder', 'radiusBottom')
    height = _param(params, 'cylinder', 'height')
    sections = max(3, int(_param(params, 'cylinder', 'radialSegments')))
    half = height / 2.0
    profile = np.array([
        [0.0, -half],
        [bottom, -half],
        [top, half],
        [0.0, half],
    ])
    return trimesh.creation.revolve(profile, sections=sections)


def create_sphere(params):
    radius = _param(params, 'sphere', 'radius')
    width_segments = max(3, int(_param(params, 'sphere', 'widthSegments')))
    height_segments = max(2, int(_param(params, 'sphere', 'heightSegments')))
    # uv_sphere doubles the longitude count it is given.
    return trimesh.creation.uv_sphere(radius=radius, count=[height_segments, max(2, width_segments // 2)])


PRIMITIVE_BUILDERS = {
    'box': create_box,
    'cylinder': create_cylinder,
    'sphere': create_sphere,
}


def create_primitive(shape, params=None, color=None):
    """Build a primitive mesh; unknown shapes fall back to a box."""
    builder = PRIMITIVE_BUILDERS.get(shape, create_box)
    tm = builder(params or {})
    mesh = Mesh.from_trimesh(tm)
    if color:
        mesh.color = color
    return mesh
