"""
In-memory mesh containers.

``Mesh`` is an indexed triangle buffer with per-vertex normals and a single
material colour. ``MeshGroup`` is an ordered collection of meshes and nested
groups, the result of evaluating Group nodes and Preview-mode Boolean nodes.

Boolean operations, vertex merging and STL export go through
``trimesh.Trimesh``; ``to_trimesh`` / ``from_trimesh`` convert at that seam.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
import trimesh
from scipy.spatial.transform import Rotation

from .constants import DEFAULT_PRIMITIVE_COLOR


def transform_matrix(position=None, rotation=None):
    """
    Build a 4x4 homogeneous transform from a position and Euler rotation.

    Rotation angles are radians applied as intrinsic X, then Y, then Z.
    """
    matrix = np.eye(4)
    if rotation is not None and np.any(rotation):
        matrix[:3, :3] = Rotation.from_euler('XYZ', np.asarray(rotation, dtype=np.float64)).as_matrix()
    if position is not None:
        matrix[:3, 3] = np.asarray(position, dtype=np.float64)
    return matrix


def is_identity(matrix):
    return np.allclose(matrix, np.eye(4))


@dataclass(eq=False)
class Mesh:
    positions: np.ndarray
    indices: np.ndarray
    normals: np.ndarray = None
    color: str = DEFAULT_PRIMITIVE_COLOR
    opacity: float = 1.0

    def __post_init__(self):
        self.positions = np.asarray(self.positions, dtype=np.float64).reshape(-1, 3)
        self.indices = np.asarray(self.indices, dtype=np.int64).reshape(-1, 3)
        if self.normals is None:
            self.normals = np.zeros_like(self.positions)
        else:
            self.normals = np.asarray(self.normals, dtype=np.float64).reshape(-1, 3)

    @property
    def vertex_count(self):
        return len(self.positions)

    @property
    def face_count(self):
        return len(self.indices)

    @property
    def is_empty(self):
        return self.face_count == 0

    @property
    def bounds(self):
        """Axis-aligned bounding box as a (2, 3) array of min and max corners."""
        if self.vertex_count == 0:
            return np.zeros((2, 3))
        return np.array([self.positions.min(axis=0), self.positions.max(axis=0)])

    @property
    def extents(self):
        lo, hi = self.bounds
        return hi - lo

    def copy(self):
        return Mesh(
            positions=self.positions.copy(),
            indices=self.indices.copy(),
            normals=self.normals.copy(),
            color=self.color,
            opacity=self.opacity,
        )

    def apply_transform(self, matrix):
        matrix = np.asarray(matrix, dtype=np.float64)
        if is_identity(matrix):
            return self
        self.positions = trimesh.transformations.transform_points(self.positions, matrix)
        # Normals follow the inverse transpose of the linear part.
        linear = np.linalg.inv(matrix[:3, :3]).T
        normals = self.normals @ linear.T
        lengths = np.linalg.norm(normals, axis=1)
        nonzero = lengths > 0
        normals[nonzero] /= lengths[nonzero][:, None]
        self.normals = normals
        return self

    def apply_translation(self, offset):
        self.positions = self.positions + np.asarray(offset, dtype=np.float64)
        return self

    def apply_scale(self, factors):
        """Scale about the origin by a scalar or per-axis factors."""
        matrix = np.eye(4)
        matrix[:3, :3] = np.diag(np.broadcast_to(np.asarray(factors, dtype=np.float64), (3,)))
        return self.apply_transform(matrix)

    def merge_vertices(self):
        """Weld coincident vertices. Normals are left for the caller to rebuild."""
        tm = self.to_trimesh(process=False)
        tm.merge_vertices(merge_tex=True, merge_norm=True)
        self.positions = np.array(tm.vertices, dtype=np.float64)
        self.indices = np.array(tm.faces, dtype=np.int64)
        self.normals = np.zeros_like(self.positions)
        return self

    def to_trimesh(self, process=True):
        return trimesh.Trimesh(vertices=self.positions.copy(), faces=self.indices.copy(), process=process)

    @classmethod
    def from_trimesh(cls, tm, color=DEFAULT_PRIMITIVE_COLOR):
        return cls(
            positions=np.array(tm.vertices, dtype=np.float64),
            indices=np.array(tm.faces, dtype=np.int64),
            normals=np.array(tm.vertex_normals, dtype=np.float64),
            color=color,
        )


def concatenate(meshes, color=None):
    """Join meshes into one buffer. Returns None for an empty list."""
    meshes = [m for m in meshes if m is not None]
    if not meshes:
        return None
    positions, indices, normals = [], [], []
    offset = 0
    for m in meshes:
        positions.append(m.positions)
        indices.append(m.indices + offset)
        normals.append(m.normals)
        offset += m.vertex_count
    return Mesh(
        positions=np.vstack(positions),
        indices=np.vstack(indices),
        normals=np.vstack(normals),
        color=color or meshes[0].color,
    )


@dataclass(eq=False)
class MeshGroup:
    children: list = field(default_factory=list)

    def add(self, item):
        if item is not None:
            self.children.append(item)
        return self

    def meshes(self):
        """Depth-first list of every mesh in the group."""
        found = []
        for child in self.children:
            if isinstance(child, MeshGroup):
                found.extend(child.meshes())
            else:
                found.append(child)
        return found

    @property
    def is_empty(self):
        return not self.meshes()

    def apply_transform(self, matrix):
        for child in self.children:
            child.apply_transform(matrix)
        return self

    def copy(self):
        return MeshGroup([child.copy() for child in self.children])

    def to_mesh(self):
        return concatenate(self.meshes())


def flatten(result):
    """Collapse an evaluation result (Mesh, MeshGroup or None) into one Mesh."""
    if result is None:
        return None
    if isinstance(result, MeshGroup):
        return result.to_mesh()
    return result
