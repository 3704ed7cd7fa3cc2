"""
Parametric keycap generator.

A keycap is built in stages:

1. A rounded-rectangle outline of the bottom footprint is extruded straight
   up to the keycap height, with several vertical steps so the walls can
   bend.
2. Every vertex is pulled in towards the top dimensions along an
   ease-in-out curve (the trapezoid), and vertices in the top fifth sag
   down into a concave dish.
3. Normals are smoothed with a crease angle so the rim stays sharp.
4. For export, the inside is hollowed out and the Cherry MX cross slot is
   cut in one sequential subtraction pass, then any legend text is
   embossed on top.

Boolean failures never abort generation: the mesh from before the failing
step is returned and the failure is logged.
"""

import logging
import math

import numpy as np
import trimesh
from shapely.geometry import box
from shapely.geometry.polygon import orient

from . import constants as C
from .boolean import TrimeshBooleanOperator
from .mesh import Mesh
from .normals import face_average_normals, smooth_normals
from .params import KeycapParams, Mode
from .text import text_mesh

logger = logging.getLogger(__name__)

def curve_segments(width, depth, performance_mode):
    """Arc segments per rounded corner, scaled with the key size."""
    divisor = C.SEGMENT_DIVISORS.get(performance_mode, C.SEGMENT_DIVISORS[C.DEFAULT_PERFORMANCE_MODE])
    segments = math.ceil(max(width, depth) / divisor)
    low, high = C.CURVE_SEGMENTS_RANGE
    return max(low, min(high, segments))


def extrude_steps(performance_mode):
    return C.EXTRUDE_STEPS.get(performance_mode, C.EXTRUDE_STEPS[C.DEFAULT_PERFORMANCE_MODE])


def top_dimensions():
    """The top face is the Cherry 12.7mm square on every key size."""
    return C.CHERRY_TOP_WIDTH, C.CHERRY_TOP_DEPTH


def rounded_rect_outline(half_width, half_depth, radius, segments=12):
    """
    Counter-clockwise outline of a rounded rectangle centred on the origin.

    The corner radius is limited to 40% of the smaller half dimension.
    Returns an (n, 2) array without a repeated closing point.
    """
    r = min(radius, min(half_width, half_depth) * 0.4)
    core = box(-half_width + r, -half_depth + r, half_width - r, half_depth - r)
    rounded = orient(core.buffer(r, quad_segs=segments), sign=1.0)
    return np.array(rounded.exterior.coords)[:-1]


def extrude_outline(outline, height, steps, cap_rings=1):
    """
    Extrude a closed CCW outline straight up from z=0 to z=height.

    The side wall has ``steps`` vertical bands. The top cap is filled with
    ``cap_rings`` concentric rings shrinking towards the centre so it has
    interior vertices to deform; the bottom cap is a single centre fan.
    Caps keep their own copy of the boundary vertices so the rim edges
    stay hard until the mesh is welded.
    """
    outline = np.asarray(outline, dtype=np.float64)
    n = len(outline)
    i = np.arange(n)
    i_next = (i + 1) % n

    # 1. Side wall rings
    levels = np.linspace(0.0, height, steps + 1)
    side = np.column_stack([
        np.tile(outline, (steps + 1, 1)),
        np.repeat(levels, n),
    ])
    k = np.arange(steps)[:, None] * n
    lower, lower_next = (k + i).ravel(), (k + i_next).ravel()
    upper, upper_next = lower + n, lower_next + n
    side_faces = np.vstack([
        np.column_stack([lower, lower_next, upper_next]),
        np.column_stack([lower, upper_next, upper]),
    ])

    # 2. Top cap: concentric rings plus a centre vertex
    top_offset = len(side)
    cap_rings = max(1, int(cap_rings))
    scales = 1.0 - np.arange(cap_rings) / cap_rings
    top = np.vstack([
        np.column_stack([np.tile(outline, (cap_rings, 1)) * np.repeat(scales, n)[:, None],
                         np.full(cap_rings * n, height)]),
        [[0.0, 0.0, height]],
    ])
    top_center = top_offset + cap_rings * n
    top_faces = []
    for ring in range(cap_rings - 1):
        outer = top_offset + ring * n
        inner = outer + n
        top_faces.append(np.column_stack([outer + i, outer + i_next, inner + i_next]))
        top_faces.append(np.column_stack([outer + i, inner + i_next, inner + i]))
    innermost = top_offset + (cap_rings - 1) * n
    top_faces.append(np.column_stack([np.full(n, top_center), innermost + i, innermost + i_next]))

    # 3. Bottom cap: centre fan facing down
    bottom_offset = top_offset + len(top)
    bottom = np.vstack([
        np.column_stack([outline, np.zeros(n)]),
        [[0.0, 0.0, 0.0]],
    ])
    bottom_center = bottom_offset + n
    bottom_faces = np.column_stack([np.full(n, bottom_center), bottom_offset + i_next, bottom_offset + i])

    positions = np.vstack([side, top, bottom])
    faces = np.vstack([side_faces] + top_faces + [bottom_faces])
    return Mesh(positions=positions, indices=faces)


def ease_in_out_cubic(t):
    t = np.asarray(t, dtype=np.float64)
    return np.where(t < 0.5, 4.0 * t ** 3, 1.0 - (-2.0 * t + 2.0) ** 3 / 2.0)


def apply_keycap_deformation(mesh, bottom_width, bottom_depth, height, top_width, top_depth, dish_depth):
    """
    Taper the extruded block into a keycap and sink the dish into its top.

    The cross section shrinks from the bottom to the top dimensions along an
    ease-in-out curve of the height fraction. Above 80% of the height the
    surface sags by ``(r / R) ** 2.2 * dish_depth``, faded in towards the
    top, where ``r`` is the distance from the vertical axis after tapering
    and ``R`` is half the larger top dimension.
    """
    positions = mesh.positions
    x, y, z = positions[:, 0], positions[:, 1], positions[:, 2]

    t = np.clip(z / height, 0.0, 1.0)
    eased = ease_in_out_cubic(t)
    x = x * (1.0 - eased * (1.0 - top_width / bottom_width))
    y = y * (1.0 - eased * (1.0 - top_depth / bottom_depth))

    dish = t > C.DISH_START
    top_factor = (t[dish] - C.DISH_START) / (1.0 - C.DISH_START)
    reach = max(top_width, top_depth) / 2.0
    distance = np.minimum(np.hypot(x[dish], y[dish]) / reach, 1.0)
    z = z.copy()
    z[dish] -= distance ** C.DISH_EXPONENT * dish_depth * top_factor

    mesh.positions = np.column_stack([x, y, z])
    return mesh


def create_stem_bars():
    """The two perpendicular bars of the Cherry MX cross slot, standing on z=0."""
    lift = trimesh.transformations.translation_matrix([0, 0, C.CHERRY_STEM_DEPTH / 2])
    h_bar = trimesh.creation.box(
        extents=[C.CHERRY_CROSS_SIZE, C.CHERRY_CROSS_THICK, C.CHERRY_STEM_DEPTH], transform=lift)
    v_bar = trimesh.creation.box(
        extents=[C.CHERRY_CROSS_THICK, C.CHERRY_CROSS_SIZE, C.CHERRY_STEM_DEPTH], transform=lift)
    return Mesh.from_trimesh(h_bar), Mesh.from_trimesh(v_bar)


def create_inner_void(shell, width, height, wall_thickness):
    """
    The cavity to subtract from the shell.

    A copy of the shell shrunk by the wall thickness on each side and once
    from the top, lifted by half a wall so a floor remains. Both horizontal
    axes take the width factor.
    """
    scale_xy = max(0.1, (width - 2 * wall_thickness) / width)
    scale_z = max(0.1, (height - wall_thickness) / height)
    void = shell.copy()
    void.apply_scale([scale_xy, scale_xy, scale_z])
    void.apply_translation([0, 0, wall_thickness * 0.5])
    return void


class KeycapGenerator:
    """
    Builds keycap meshes from ``KeycapParams``.

    ``performance_mode`` controls preview tessellation; export geometry is
    always built in the finest mode.
    """

    def __init__(self, boolean_operator=None, performance_mode=C.DEFAULT_PERFORMANCE_MODE):
        self.boolean = boolean_operator or TrimeshBooleanOperator()
        self.performance_mode = C.DEFAULT_PERFORMANCE_MODE
        self.set_performance_mode(performance_mode)

    def set_performance_mode(self, mode):
        """Switch preview tessellation. Returns True if the mode changed."""
        if mode not in C.PERFORMANCE_MODES or mode == self.performance_mode:
            return False
        self.performance_mode = mode
        return True

    def tessellation_mode(self, quality):
        return C.EXPORT_PERFORMANCE_MODE if quality == Mode.EXPORT else self.performance_mode

    def generate(self, params, quality=Mode.EXPORT):
        """
        Generate a keycap mesh.

        Preview quality returns the outer shell only. Export quality also
        hollows the shell, cuts the stem slot and embosses the legend.
        """
        if not isinstance(params, KeycapParams):
            params = KeycapParams.from_dict(params)
        params = params.clamped()
        quality = Mode(quality)
        tessellation = self.tessellation_mode(quality)

        mesh = self.create_shell(params, tessellation)
        if quality == Mode.PREVIEW:
            return mesh

        width = params.bottom_dimensions[0]
        height = params.effective_height
        if params.wall_thickness > 0 or params.has_stem:
            mesh = self._subtract_cavities(mesh, width, height, params.wall_thickness, params.has_stem)

        if params.emboss.active:
            mesh = self._emboss_text(mesh, params.emboss, height)

        mesh.color = params.color
        return mesh

    def create_shell(self, params, tessellation):
        """Outer keycap surface: extruded outline, tapered and dished."""
        width, depth = params.bottom_dimensions
        height = params.effective_height
        top_width, top_depth = top_dimensions()

        outline = rounded_rect_outline(
            width / 2, depth / 2, params.top_radius, curve_segments(width, depth, tessellation))
        mesh = extrude_outline(
            outline, height, extrude_steps(tessellation), C.TOP_CAP_RINGS.get(tessellation, 1))
        apply_keycap_deformation(
            mesh, width, depth, height, top_width, top_depth, params.effective_dish_depth)

        mesh.normals = self._normals(mesh, tessellation)
        mesh.color = params.color
        return mesh

    def stem_geometry(self):
        """Cross-slot bars for helper display."""
        h_bar, v_bar = create_stem_bars()
        return {'h_bar': h_bar, 'v_bar': v_bar, 'stem_depth': C.CHERRY_STEM_DEPTH}

    def _normals(self, mesh, tessellation):
        if tessellation == 'fast':
            return face_average_normals(mesh)
        return smooth_normals(mesh, C.CHERRY_SMOOTH_ANGLE)

    def _subtract_cavities(self, shell, width, height, wall_thickness, has_stem):
        cutters = []
        if 0 < wall_thickness < width / 2:
            cutters.append(create_inner_void(shell, width, height, wall_thickness))
        if has_stem:
            cutters.extend(create_stem_bars())
        if not cutters:
            return shell

        # One sequential pass: shell - void - bar - bar
        result = shell
        try:
            for cutter in cutters:
                result = self.boolean.subtract(result, cutter)
        except Exception as e:
            logger.warning("Cavity subtraction failed, keeping solid shell: %s", e)
            return shell

        result.normals = smooth_normals(result, C.CHERRY_SMOOTH_ANGLE)
        result.color = shell.color
        return result

    def _emboss_text(self, mesh, emboss, height):
        try:
            legend = text_mesh(emboss.text.strip(), emboss.font_size, emboss.depth)
            # Sink the legend halfway into the top so the union overlaps.
            legend.apply_translation([0, 0, height - emboss.depth * 0.5])
            result = self.boolean.union(mesh, legend)
        except Exception as e:
            logger.warning("Text emboss skipped: %s", e)
            return mesh

        result.normals = smooth_normals(result, C.CHERRY_SMOOTH_ANGLE)
        result.color = mesh.color
        return result
