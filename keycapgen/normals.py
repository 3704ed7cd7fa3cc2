"""
Vertex normal passes.

``smooth_normals`` is a crease-angle smoothing pass: each vertex averages
the normals of its incident faces that lie within a threshold angle of the
vertex's *first* incident face, so hard edges (the keycap's top rim, the
stem slot) stay sharp while curved walls shade smoothly.

``face_average_normals`` is the cheap variant used for fast previews and
after boolean operations: a plain area-weighted average of all incident
faces.
"""

import logging
import math

import numpy as np

logger = logging.getLogger(__name__)


def face_normals(positions, indices):
    """Unit normal of every triangle, normalize(cross(p1 - p0, p2 - p0))."""
    p0 = positions[indices[:, 0]]
    p1 = positions[indices[:, 1]]
    p2 = positions[indices[:, 2]]
    normals = np.cross(p1 - p0, p2 - p0)
    lengths = np.linalg.norm(normals, axis=1)
    nonzero = lengths > 0
    normals[nonzero] /= lengths[nonzero][:, None]
    return normals


def vertex_face_adjacency(indices, vertex_count):
    """
    Compact vertex -> incident face adjacency.

    Returns ``(offsets, faces)`` where the faces incident to vertex ``v`` are
    ``faces[offsets[v]:offsets[v + 1]]``, listed in ascending face order.
    """
    flat = indices.reshape(-1)
    counts = np.bincount(flat, minlength=vertex_count)
    offsets = np.zeros(vertex_count + 1, dtype=np.int64)
    np.cumsum(counts, out=offsets[1:])
    # A stable sort by vertex id keeps each vertex's faces in face order.
    order = np.argsort(flat, kind='stable')
    faces = order // 3
    return offsets, faces


def smooth_normals(mesh, angle_threshold_deg):
    """
    Compute crease-preserving per-vertex normals for ``mesh``.

    Returns an (n, 3) array, or ``None`` when the mesh is not an indexed
    triangle mesh. Vertices not referenced by any face get a zero normal.
    """
    indices = mesh.indices
    if indices is None or indices.ndim != 2 or indices.shape[1] != 3:
        logger.warning("Mesh is not indexed, skipping smooth normals")
        return None

    positions = mesh.positions
    vertex_count = len(positions)
    smoothed = np.zeros((vertex_count, 3))
    if len(indices) == 0:
        return smoothed

    # Past 180 degrees every neighbour already qualifies.
    threshold_dot = math.cos(math.radians(min(angle_threshold_deg, 180.0)))

    # 1. One normal per face
    fnormals = face_normals(positions, indices)

    # 2. CSR adjacency
    offsets, faces = vertex_face_adjacency(indices, vertex_count)
    counts = np.diff(offsets)
    used = counts > 0

    # Owner vertex of every adjacency slot
    owner = np.repeat(np.arange(vertex_count), counts)

    # 3. Base normal = first incident face of each vertex
    base = np.zeros((vertex_count, 3))
    base[used] = fnormals[faces[offsets[:-1][used]]]

    neighbour = fnormals[faces]
    dots = np.einsum('ij,ij->i', neighbour, base[owner])
    keep = dots > threshold_dot

    summed = np.zeros((vertex_count, 3))
    np.add.at(summed, owner[keep], neighbour[keep])

    lengths = np.linalg.norm(summed, axis=1)
    good = lengths > 0
    smoothed[good] = summed[good] / lengths[good][:, None]
    # Everything filtered out by the threshold: keep the base face normal.
    fallback = used & ~good
    smoothed[fallback] = base[fallback]
    return smoothed


def face_average_normals(mesh):
    """Area-weighted average of all incident face normals per vertex."""
    positions = mesh.positions
    indices = mesh.indices
    normals = np.zeros((len(positions), 3))
    if len(indices) == 0:
        return normals
    p0 = positions[indices[:, 0]]
    weighted = np.cross(positions[indices[:, 1]] - p0, positions[indices[:, 2]] - p0)
    for corner in range(3):
        np.add.at(normals, indices[:, corner], weighted)
    lengths = np.linalg.norm(normals, axis=1)
    nonzero = lengths > 0
    normals[nonzero] /= lengths[nonzero][:, None]
    return normals
