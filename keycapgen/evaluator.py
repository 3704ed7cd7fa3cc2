"""
Scene tree evaluator.

Walks a scene tree and turns it into meshes, in one of two modes:

* ``Mode.PREVIEW``: keycaps are built shell-only in the current performance
  mode and Boolean nodes are never computed. The first child is drawn as is
  and the remaining children as translucent ghosts on top of it.
* ``Mode.EXPORT``: keycaps are fully hollowed and Boolean nodes combine
  their children left to right through the boolean operator.

The mode is an argument of every call, never evaluator state.
"""

import logging

from . import constants as C
from .boolean import TrimeshBooleanOperator, apply_operation
from .cache import CacheKey, GeometryCache
from .errors import BooleanOperationError
from .generator import KeycapGenerator
from .mesh import MeshGroup, flatten, transform_matrix
from .normals import smooth_normals
from .params import Mode
from .primitives import create_primitive
from .scene import Boolean, Group, KeycapTemplate, Primitive

logger = logging.getLogger(__name__)


class Evaluator:
    """
    Evaluates scene nodes into ``Mesh`` / ``MeshGroup`` results.

    The evaluator owns its two geometry caches. Pass them in to share a
    cache between evaluators on the same thread, or to size the preview
    cache differently.
    """

    def __init__(self, boolean_operator=None, generator=None, preview_cache=None,
                 export_cache=None, performance_mode=C.DEFAULT_PERFORMANCE_MODE):
        self.boolean = boolean_operator or TrimeshBooleanOperator()
        self.generator = generator or KeycapGenerator(self.boolean, performance_mode)
        self.preview_cache = preview_cache if preview_cache is not None else GeometryCache(
            max_entries=C.PREVIEW_CACHE_ENTRIES, name='preview')
        self.export_cache = export_cache if export_cache is not None else GeometryCache(name='export')
        self.generator.set_performance_mode(performance_mode)

    @property
    def performance_mode(self):
        return self.generator.performance_mode

    def set_performance_mode(self, mode):
        """Change preview tessellation. Stale preview geometry is dropped."""
        if self.generator.set_performance_mode(mode):
            logger.info("Performance mode set to %s", mode)
            self.preview_cache.clear()
            return True
        return False

    def clear_cache(self):
        self.preview_cache.clear()
        self.export_cache.clear()

    def evaluate_scene(self, scene, mode=Mode.EXPORT):
        group = MeshGroup()
        if scene is None or scene.root is None:
            return group
        return group.add(self.evaluate(scene.root, mode))

    def evaluate(self, node, mode=Mode.EXPORT):
        """Evaluate one node. Unknown node types evaluate to ``None``."""
        mode = Mode(mode)
        if isinstance(node, Primitive):
            result = create_primitive(node.shape, node.params, node.color)
        elif isinstance(node, KeycapTemplate):
            result = self._evaluate_keycap(node, mode)
        elif isinstance(node, Boolean):
            if not node.children:
                return None
            if len(node.children) == 1:
                return self.evaluate(node.children[0], mode)
            if mode == Mode.PREVIEW:
                result = self._preview_boolean(node)
            else:
                result = self._export_boolean(node)
        elif isinstance(node, Group):
            result = MeshGroup()
            for child in node.children:
                result.add(self.evaluate(child, mode))
        else:
            logger.debug("Skipping unknown node %r", getattr(node, 'type', node))
            return None

        if result is None:
            return None
        return result.apply_transform(transform_matrix(node.position, node.rotation))

    def _evaluate_keycap(self, node, mode):
        cache = self.preview_cache if mode == Mode.PREVIEW else self.export_cache
        key = CacheKey.from_params(node.params)
        mesh = cache.get_or_create(key, lambda: self.generator.generate(node.params, mode))
        mesh.color = node.params.color
        return mesh

    def _preview_boolean(self, node):
        base, *rest = node.children
        group = MeshGroup()
        group.add(self.evaluate(base, Mode.PREVIEW))
        for child in rest:
            ghost = flatten(self.evaluate(child, Mode.PREVIEW))
            if ghost is not None:
                ghost.opacity = C.GHOST_OPACITY
                group.add(ghost)
        return group

    def _export_boolean(self, node):
        base, *rest = node.children
        accumulator = flatten(self.evaluate(base, Mode.EXPORT))
        if accumulator is None:
            return None
        for child in rest:
            mesh = flatten(self.evaluate(child, Mode.EXPORT))
            if mesh is None:
                continue
            try:
                accumulator = apply_operation(self.boolean, node.operation, accumulator, mesh)
            except BooleanOperationError as e:
                logger.warning("Boolean %s on node %s skipped: %s", node.operation, node.id, e)

        accumulator.merge_vertices()
        accumulator.normals = smooth_normals(accumulator, C.CHERRY_SMOOTH_ANGLE)
        return accumulator
