"""
STL export.

Evaluated scenes are written as binary STL (80-byte header, face count,
then a normal and three vertices per face; no colour). A ``MeshGroup`` is
concatenated into a single mesh first.
"""

import logging
import os
import re

import trimesh

from . import constants as C
from .errors import EmptySceneError
from .evaluator import Evaluator
from .mesh import flatten
from .params import KeycapParams, Mode
from .scene import Scene, create_group_node, create_keycap_node, scene_from_dict

logger = logging.getLogger(__name__)

STL_HEADER_BYTES = 84
STL_FACE_BYTES = 50

_UNSAFE = re.compile(r'[^A-Za-z0-9._-]')


def sanitize_token(s):
    """Replace every character outside ``[A-Za-z0-9._-]`` with an underscore."""
    return _UNSAFE.sub('_', str(s))


def make_base_name(preset=None, main_text=None):
    """
    File stem for an exported keycap: ``{preset}_{text}``.

    >>> make_base_name('1u', 'Esc')
    '1u_Esc'
    >>> make_base_name('6.25u')
    '6.25u_keycap'
    """
    safe_preset = sanitize_token(preset or C.DEFAULT_SIZE)
    text = sanitize_token(main_text or '').strip('_') or 'keycap'
    return f"{safe_preset}_{text}"


def mesh_to_stl_bytes(mesh):
    if mesh is None or mesh.is_empty:
        raise EmptySceneError("Nothing to export: mesh is empty")
    return trimesh.exchange.stl.export_stl(mesh.to_trimesh(process=False))


def scene_to_stl_bytes(scene, evaluator=None):
    """Evaluate ``scene`` in export mode and serialise it to binary STL."""
    if isinstance(scene, dict):
        scene = scene_from_dict(scene)
    if scene is None or scene.root is None:
        raise EmptySceneError("Nothing to export: scene is empty")
    evaluator = evaluator or Evaluator()
    mesh = flatten(evaluator.evaluate_scene(scene, Mode.EXPORT))
    return mesh_to_stl_bytes(mesh)


def export_scene_stl(scene, path, evaluator=None, on_stage=None):
    """Run the export pipeline and write ``path``. Returns the byte count."""
    if on_stage:
        on_stage("Building geometry...")
    data = scene_to_stl_bytes(scene, evaluator)
    if on_stage:
        on_stage("Writing file...")
    with open(path, 'wb') as f:
        f.write(data)
    logger.info("Wrote %s (%d bytes)", path, len(data))
    return len(data)


def single_keycap_scene(params, size):
    """A scene with one keycap of ``params`` resized to ``size``."""
    if not isinstance(params, KeycapParams):
        params = KeycapParams.from_dict(params)
    data = params.to_dict()
    data['size'] = size
    root = create_group_node([create_keycap_node(data)], id='root', name='Scene')
    return Scene(root=root, name=size)


def batch_export_stl(base_params, sizes, out_dir, evaluator=None, on_progress=None):
    """
    Write one STL per size into ``out_dir``.

    Sizes missing from the size table are skipped, and a size whose export
    fails is logged and skipped. Returns the list of written paths.
    """
    evaluator = evaluator or Evaluator()
    os.makedirs(out_dir, exist_ok=True)
    written = []
    total = len(sizes)
    for i, size in enumerate(sizes):
        if on_progress:
            on_progress(f"Step {i + 1}/{total}: Exporting {size}...")
        if size not in C.KEYCAP_SIZES:
            logger.warning("Skipping unknown keycap size %r", size)
            continue
        path = os.path.join(out_dir, f"keycap_{sanitize_token(size)}.stl")
        try:
            export_scene_stl(single_keycap_scene(base_params, size), path, evaluator)
        except Exception as e:
            logger.error("Batch export failed for %s: %s", size, e)
            continue
        written.append(path)
    return written


def validate_for_print(mesh):
    """
    Advisory checks before printing.

    Returns ``(is_printable, errors, warnings)``. Only a missing mesh is an
    error; everything else is a warning and never blocks export.
    """
    if mesh is None:
        return False, ["Model geometry is missing, cannot export"], []
    warnings = []
    if mesh.vertex_count == 0:
        warnings.append("Geometry has no vertices, the model may be empty")
    elif not mesh.to_trimesh().is_watertight:
        warnings.append("Mesh is not watertight, the slicer may need to repair it")
    return True, [], warnings
