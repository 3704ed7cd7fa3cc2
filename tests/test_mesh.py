"""Tests for mesh containers, primitives and legend text."""

import math

import numpy as np
import pytest

from keycapgen.errors import TextLayoutError
from keycapgen.mesh import Mesh, MeshGroup, concatenate, flatten, is_identity, transform_matrix
from keycapgen.primitives import create_primitive
from keycapgen.text import text_mesh, text_outline


def test_transform_matrix_is_xyz_euler() -> None:
    matrix = transform_matrix([1, 2, 3], [0, 0, math.pi / 2])

    assert np.allclose(matrix[:3, 3], [1, 2, 3])
    assert np.allclose(matrix[:3, :3] @ [1, 0, 0], [0, 1, 0])
    assert is_identity(transform_matrix([0, 0, 0], [0, 0, 0]))


def test_apply_transform_rotates_normals() -> None:
    mesh = Mesh(positions=[[0, 0, 0]], indices=np.zeros((0, 3)), normals=[[1, 0, 0]])

    mesh.apply_transform(transform_matrix(rotation=[0, 0, math.pi / 2]))

    assert np.allclose(mesh.normals[0], [0, 1, 0])


def test_scale_keeps_unit_normals() -> None:
    box = create_primitive('box')

    box.apply_scale([2, 1, 0.5])

    assert box.extents.tolist() == pytest.approx([36, 18, 5.75])
    assert np.allclose(np.linalg.norm(box.normals, axis=1), 1)


def test_copy_is_deep() -> None:
    box = create_primitive('box', color='#112233')
    clone = box.copy()
    clone.positions[0] = [99, 99, 99]

    assert not np.allclose(box.positions[0], [99, 99, 99])
    assert clone.color == '#112233'


def test_concatenate_offsets_indices() -> None:
    a = create_primitive('box')
    b = create_primitive('box').apply_translation([50, 0, 0])

    joined = concatenate([a, None, b], color='#abcdef')

    assert joined.vertex_count == a.vertex_count + b.vertex_count
    assert joined.indices[a.face_count:].min() == a.vertex_count
    assert joined.color == '#abcdef'
    assert concatenate([]) is None


def test_merge_vertices_welds_duplicates() -> None:
    a = create_primitive('box')
    twice = concatenate([a, a.copy()])

    twice.merge_vertices()

    assert twice.vertex_count == a.vertex_count
    assert len(twice.normals) == twice.vertex_count


def test_mesh_group_flattens() -> None:
    inner = MeshGroup([create_primitive('box'), create_primitive('sphere')])
    group = MeshGroup().add(create_primitive('cylinder')).add(None).add(inner)

    assert len(group.meshes()) == 3
    assert flatten(group).face_count == sum(m.face_count for m in group.meshes())
    assert flatten(None) is None
    assert MeshGroup().is_empty


def test_cylinder_frustum() -> None:
    cone = create_primitive('cylinder', {'radiusTop': 2, 'radiusBottom': 6, 'height': 10, 'radialSegments': 24})
    tm = cone.to_trimesh()

    assert cone.extents[2] == pytest.approx(10)
    assert cone.bounds[0][2] == pytest.approx(-5)
    assert tm.is_watertight
    assert tm.volume > 0


def test_sphere_segments() -> None:
    sphere = create_primitive('sphere', {'radius': 3})

    assert sphere.extents[2] == pytest.approx(6)
    assert sphere.to_trimesh().is_watertight


def test_text_outline_has_counters() -> None:
    """The hole in an 'O' is cut out of the filled glyph."""

    outline = text_outline('O', 8)

    assert not outline.is_empty
    assert outline.area < outline.convex_hull.area * 0.8


def test_empty_text_cannot_be_laid_out() -> None:
    with pytest.raises(TextLayoutError):
        text_mesh(' ', 5, 0.4)


def test_text_mesh_sits_on_the_origin() -> None:
    pytest.importorskip("mapbox_earcut")

    legend = text_mesh('Esc', 5, 0.4, color='#000000')
    lo, hi = legend.bounds

    assert lo[2] == pytest.approx(0)
    assert hi[2] == pytest.approx(0.4)
    assert (lo[0] + hi[0]) / 2 == pytest.approx(0, abs=1e-6)
    assert legend.color == '#000000'
