"""
Boolean mesh operator.

The generator and the evaluator only ever see the narrow
``BooleanMeshOperator`` interface: ``union``, ``subtract`` and ``intersect``,
each taking two meshes and returning a new one, and each allowed to fail
with ``BooleanOperationError``. ``TrimeshBooleanOperator`` fulfils it with
``trimesh.boolean`` (Manifold backend, ``pip install keycapgen[boolean]``).
"""

from __future__ import annotations

import logging

from typing import Protocol

import trimesh

from .errors import BooleanOperationError
from .mesh import Mesh

logger = logging.getLogger(__name__)


class BooleanMeshOperator(Protocol):
    def union(self, a: Mesh, b: Mesh) -> Mesh: ...

    def subtract(self, a: Mesh, b: Mesh) -> Mesh: ...

    def intersect(self, a: Mesh, b: Mesh) -> Mesh: ...


OPERATIONS = ('union', 'subtract', 'intersect')
DEFAULT_OPERATION = 'subtract'


def apply_operation(operator, operation, a, b):
    """Dispatch ``operation`` by name; anything unrecognised subtracts."""
    if operation == 'union':
        return operator.union(a, b)
    if operation == 'intersect':
        return operator.intersect(a, b)
    return operator.subtract(a, b)


class TrimeshBooleanOperator:
    """Boolean operations through ``trimesh.boolean``."""

    def __init__(self, engine=None, check_volume=True):
        self.engine = engine
        self.check_volume = check_volume

    def _run(self, function, name, a, b):
        logger.debug("Boolean %s: %d faces with %d faces", name, a.face_count, b.face_count)
        try:
            result = function(
                [a.to_trimesh(), b.to_trimesh()],
                engine=self.engine,
                check_volume=self.check_volume,
            )
        except Exception as e:
            raise BooleanOperationError(f"{name} failed: {e}") from e
        if result is None:
            raise BooleanOperationError(f"{name} returned no mesh")
        return Mesh.from_trimesh(result, color=a.color)

    def union(self, a, b):
        return self._run(trimesh.boolean.union, 'union', a, b)

    def subtract(self, a, b):
        return self._run(trimesh.boolean.difference, 'subtract', a, b)

    def intersect(self, a, b):
        return self._run(trimesh.boolean.intersection, 'intersect', a, b)
