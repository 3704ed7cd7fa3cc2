"""Tests for the parametric keycap generator."""

import numpy as np
import pytest

from keycapgen import constants as C
from keycapgen.generator import (
    KeycapGenerator,
    apply_keycap_deformation,
    create_inner_void,
    curve_segments,
    ease_in_out_cubic,
    extrude_outline,
    rounded_rect_outline,
    top_dimensions,
)
from keycapgen.params import EmbossParams, KeycapParams, Mode

CHERRY_1U = KeycapParams(profile='Cherry', size='1u', has_stem=True, top_radius=0.5, wall_thickness=1.5)


def test_curve_segments_scale_with_size_and_mode() -> None:
    """Larger keys and finer modes get more arc segments, within bounds."""

    assert curve_segments(18, 18, 'fast') == 8
    assert curve_segments(18, 18, 'quality') == 12
    assert curve_segments(126, 18, 'quality') == 32


def test_top_face_is_the_cherry_square() -> None:
    assert top_dimensions() == pytest.approx((12.7, 12.7))


@pytest.mark.parametrize('size', ['1u', '2u', 'ISO-Enter'])
def test_wide_keys_taper_to_the_same_top(size) -> None:
    """Every key size narrows to a 12.7mm square top face."""

    params = KeycapParams(size=size, dish_depth=0)
    mesh = KeycapGenerator(boolean_operator=object()).generate(params, Mode.PREVIEW)

    top = mesh.positions[np.isclose(mesh.positions[:, 2], params.clamped().effective_height)]
    extents = top.max(axis=0) - top.min(axis=0)
    assert extents[:2].tolist() == pytest.approx([12.7, 12.7])


def test_ease_in_out_cubic_endpoints() -> None:
    values = ease_in_out_cubic([0.0, 0.5, 1.0])

    assert values.tolist() == pytest.approx([0.0, 0.5, 1.0])


def test_rounded_rect_outline_is_ccw_and_bounded() -> None:
    outline = rounded_rect_outline(9, 9, 0.5, segments=8)
    x, y = outline[:, 0], outline[:, 1]
    signed_area = 0.5 * np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y)

    assert signed_area > 0
    assert x.max() == pytest.approx(9)
    assert y.min() == pytest.approx(-9)
    assert not np.allclose(outline[0], outline[-1])


def test_extruded_outline_is_closed() -> None:
    """Side rings and caps share coordinates so the extrusion welds watertight."""

    outline = rounded_rect_outline(9, 9, 1.0, segments=4)
    mesh = extrude_outline(outline, 10.0, steps=3, cap_rings=2)

    tm = mesh.to_trimesh()
    assert tm.is_watertight
    assert tm.volume > 0


def test_deformation_sinks_the_dish() -> None:
    """The dish sags below the rim while the top centre keeps full height."""

    outline = rounded_rect_outline(9, 9, 0.5, segments=8)
    mesh = extrude_outline(outline, 11.5, steps=10, cap_rings=4)
    apply_keycap_deformation(mesh, 18, 18, 11.5, 12.7, 12.7, 1.2)

    z = mesh.positions[:, 2]
    assert z.max() == pytest.approx(11.5)
    assert z.min() == pytest.approx(0.0)
    top = mesh.positions[np.isclose(np.hypot(mesh.positions[:, 0], mesh.positions[:, 1]), 0)]
    assert top[:, 2].max() == pytest.approx(11.5)


def test_inner_void_leaves_walls_and_floor() -> None:
    generator = KeycapGenerator(boolean_operator=object())
    shell = generator.create_shell(CHERRY_1U.clamped(), 'fast')

    void = create_inner_void(shell, 18, 11.5, 1.5)
    lo, hi = void.bounds

    assert lo[2] == pytest.approx(0.75)
    assert (hi - lo)[0] == pytest.approx(15.0)


def test_inner_void_scales_both_axes_by_the_width() -> None:
    """A 2u void keeps the shell's aspect ratio."""

    generator = KeycapGenerator(boolean_operator=object())
    shell = generator.create_shell(KeycapParams(size='2u').clamped(), 'fast')

    void = create_inner_void(shell, 36, 11.5, 1.5)
    factor = (36 - 3.0) / 36

    assert void.extents[:2].tolist() == pytest.approx((shell.extents[:2] * factor).tolist())


@pytest.mark.parametrize('quality', [Mode.PREVIEW, Mode.EXPORT])
def test_generated_buffers_are_consistent(quality, failing_operator) -> None:
    """Every generated mesh has one normal per vertex and whole triangles."""

    generator = KeycapGenerator(boolean_operator=failing_operator)

    for size in ('1u', '2u', 'ISO-Enter'):
        mesh = generator.generate(KeycapParams(size=size), quality)
        assert len(mesh.positions) == len(mesh.normals)
        assert mesh.indices.shape[1] == 3
        assert mesh.indices.max() < mesh.vertex_count
        assert not mesh.is_empty


def test_top_radius_is_clamped() -> None:
    """An absurd corner radius behaves exactly like the maximum."""

    generator = KeycapGenerator(boolean_operator=object())
    huge = generator.generate(KeycapParams(top_radius=999), Mode.PREVIEW)
    limit = generator.generate(KeycapParams(top_radius=3.0), Mode.PREVIEW)

    assert np.array_equal(huge.positions, limit.positions)
    assert np.array_equal(huge.indices, limit.indices)


def test_cherry_1u_dimensions(failing_operator) -> None:
    """A Cherry 1u is about 18x18 at the base and 11.5 tall less the dish."""

    mesh = KeycapGenerator(boolean_operator=failing_operator).generate(CHERRY_1U, Mode.EXPORT)
    width, depth, height = mesh.extents

    assert width == pytest.approx(18.0, abs=1e-3)
    assert depth == pytest.approx(18.0, abs=1e-3)
    assert 11.5 - C.CHERRY_DISH_DEPTH <= height <= 11.5 + 1e-6


def test_cavities_are_cut_in_one_sequential_pass(counting_operator) -> None:
    """Shell minus void, then minus each stem bar, in that order."""

    generator = KeycapGenerator(boolean_operator=counting_operator)
    generator.generate(CHERRY_1U, Mode.EXPORT)

    assert counting_operator.calls == ['subtract', 'subtract', 'subtract']


def test_no_stem_only_hollows(counting_operator) -> None:
    generator = KeycapGenerator(boolean_operator=counting_operator)
    generator.generate(KeycapParams(has_stem=False), Mode.EXPORT)

    assert counting_operator.calls == ['subtract']


def test_preview_never_runs_booleans(counting_operator) -> None:
    generator = KeycapGenerator(boolean_operator=counting_operator)
    generator.generate(CHERRY_1U, Mode.PREVIEW)

    assert counting_operator.calls == []


def test_boolean_failure_returns_the_shell(failing_operator) -> None:
    """A failed subtraction degrades to the solid shell instead of raising."""

    generator = KeycapGenerator(boolean_operator=failing_operator)
    params = KeycapParams(color='#123456')

    mesh = generator.generate(params, Mode.EXPORT)
    shell = generator.create_shell(params.clamped(), C.EXPORT_PERFORMANCE_MODE)

    assert failing_operator.calls == 1
    assert np.array_equal(mesh.positions, shell.positions)
    assert mesh.color == '#123456'


def test_emboss_failure_keeps_the_keycap(failing_operator) -> None:
    generator = KeycapGenerator(boolean_operator=failing_operator)
    params = KeycapParams(has_stem=False, emboss=EmbossParams(enabled=True, text='A'))

    mesh = generator.generate(params, Mode.EXPORT)

    assert not mesh.is_empty


def test_performance_mode_changes_preview_tessellation() -> None:
    generator = KeycapGenerator(boolean_operator=object(), performance_mode='fast')
    coarse = generator.generate(CHERRY_1U, Mode.PREVIEW)

    assert generator.set_performance_mode('quality')
    assert not generator.set_performance_mode('quality')
    assert not generator.set_performance_mode('ludicrous')
    fine = generator.generate(CHERRY_1U, Mode.PREVIEW)

    assert fine.vertex_count > coarse.vertex_count


def test_stem_geometry() -> None:
    stem = KeycapGenerator(boolean_operator=object()).stem_geometry()

    assert stem['stem_depth'] == C.CHERRY_STEM_DEPTH
    assert stem['h_bar'].extents.tolist() == pytest.approx([C.CHERRY_CROSS_SIZE, C.CHERRY_CROSS_THICK, C.CHERRY_STEM_DEPTH])
    assert stem['v_bar'].bounds[0][2] == pytest.approx(0.0)


def test_real_boolean_hollows_the_keycap() -> None:
    """With a mesh kernel installed the export keycap is hollow with a stem slot."""

    pytest.importorskip("manifold3d")
    generator = KeycapGenerator()

    solid = generator.create_shell(CHERRY_1U.clamped(), C.EXPORT_PERFORMANCE_MODE).to_trimesh()
    hollow = generator.generate(CHERRY_1U, Mode.EXPORT)
    tm = hollow.to_trimesh()

    assert tm.volume < solid.volume
    assert hollow.extents[0] == pytest.approx(18.0, abs=1e-3)
    assert hollow.bounds[0][2] == pytest.approx(0.0, abs=1e-6)
