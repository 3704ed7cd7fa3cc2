"""
Legend text geometry for embossing.

Glyph outlines come from matplotlib's ``TextPath``; loops are sorted into
filled regions and holes by containment depth (even-odd), merged with
shapely and extruded with trimesh.
"""

import logging

import numpy as np
import trimesh
from matplotlib.font_manager import FontProperties
from matplotlib.textpath import TextPath
from shapely.geometry import MultiPolygon, Polygon
from shapely.ops import unary_union

from .errors import TextLayoutError
from .mesh import Mesh

logger = logging.getLogger(__name__)

FONT_FAMILY = 'DejaVu Sans'
FONT_WEIGHT = 'bold'


def _fix_valid(geom):
    if geom.is_valid:
        return geom
    return geom.buffer(0)


def _as_polygons(geom):
    if geom.is_empty:
        return []
    if isinstance(geom, Polygon):
        return [geom]
    return [g for g in getattr(geom, 'geoms', []) if isinstance(g, Polygon)]


def _polygons_from_loops(loops):
    """
    Turn glyph outline loops into filled shapely geometry.

    A loop nested inside an odd number of other loops is a hole (the
    counter of an "O"), otherwise it is filled.
    """
    polys = []
    for arr in loops:
        if len(arr) < 3:
            continue
        coords = [(float(x), float(y)) for x, y in arr]
        if coords[0] == coords[-1]:
            coords = coords[:-1]
        if len(coords) < 3:
            continue
        p = _fix_valid(Polygon(coords))
        if p.area > 1e-6:
            polys.append(p)

    if not polys:
        return MultiPolygon([])

    depth = []
    for i, inner in enumerate(polys):
        point = inner.representative_point()
        depth.append(sum(
            1 for j, outer in enumerate(polys)
            if j != i and outer.area > inner.area and outer.contains(point)
        ))

    filled = [p for p, d in zip(polys, depth) if d % 2 == 0]
    holes = [p for p, d in zip(polys, depth) if d % 2 == 1]

    geom = unary_union(filled)
    if holes:
        geom = geom.difference(unary_union(holes))
    return _fix_valid(geom)


def text_outline(text, font_size):
    """2-D outline of ``text`` with an em height of ``font_size`` millimetres."""
    try:
        prop = FontProperties(family=FONT_FAMILY, weight=FONT_WEIGHT)
        path = TextPath((0, 0), text, size=font_size, prop=prop)
        loops = path.to_polygons()
    except Exception as e:
        raise TextLayoutError(f"could not lay out {text!r}: {e}") from e
    return _polygons_from_loops(loops)


def text_mesh(text, font_size, depth, color=None):
    """
    Extruded legend text, centred on the origin in X/Y with its base at z=0.

    Raises ``TextLayoutError`` when the text has no printable outline or
    cannot be triangulated.
    """
    outline = text_outline(text, font_size)
    polygons = _as_polygons(outline)
    if not polygons:
        raise TextLayoutError(f"no glyph outlines for {text!r}")

    try:
        parts = [trimesh.creation.extrude_polygon(p, height=depth) for p in polygons]
    except Exception as e:
        raise TextLayoutError(f"could not extrude {text!r}: {e}") from e

    combined = trimesh.util.concatenate(parts)
    lo, hi = combined.bounds
    center = (lo + hi) / 2
    combined.apply_translation([-center[0], -center[1], -lo[2]])

    mesh = Mesh.from_trimesh(combined)
    if color:
        mesh.color = color
    logger.debug("Laid out %r: %d glyph regions, extents %s", text, len(polygons), np.round(hi - lo, 2))
    return mesh
