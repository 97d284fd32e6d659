"""
Fixed-width vertex adjacency for the icosphere grid.

Every vertex gets a row of 6 neighbor slots. Vertices of a subdivided
icosphere have 6 neighbors (hexagons) except the 12 icosahedron
corners, which have 5 (pentagons). The spare slot of a pentagon holds
NO_NEIGHBOR, and every stencil operation skips that slot, so callers can
always loop over 6 directions without special-casing pentagons.
"""

from typing import List

import numpy as np
import structlog

logger = structlog.get_logger()

# Number of neighbor slots per vertex.
MAX_NEIGHBORS = 6

# Sentinel for an unused slot. Never a valid vertex id.
NO_NEIGHBOR = -1


class MeshTopologyError(ValueError):
    """Raised when a mesh does not have the degree <= 6 topology of an icosphere."""


def _append_neighbor(neighbors: np.ndarray, idx: int, neighbor: int) -> None:
    """Insert neighbor into the first free slot of idx unless already present."""
    row = neighbors[idx]
    for slot in range(MAX_NEIGHBORS):
        if row[slot] == NO_NEIGHBOR:
            row[slot] = neighbor
            return
        if row[slot] == neighbor:
            return
    raise MeshTopologyError(
        f"Vertex {idx} has more than {MAX_NEIGHBORS} neighbors "
        f"(existing: {row.tolist()}, new: {neighbor})"
    )


def build_neighbor_graph(triangles: np.ndarray, n_vertices: int) -> np.ndarray:
    """
    Derive the neighbor table from a triangle index list.

    Each pair of vertices of each triangle is recorded as mutually adjacent.
    Neighbors are stored in first-seen order; an edge shared by two
    triangles is inserted only once.

    Args:
        triangles: (M, 3) vertex ids
        n_vertices: Number of vertices in the mesh

    Returns:
        (n_vertices, 6) int32 array, unused slots set to NO_NEIGHBOR
    """
    neighbors = np.full((n_vertices, MAX_NEIGHBORS), NO_NEIGHBOR, dtype=np.int32)

    for a, b, c in np.asarray(triangles).tolist():
        _append_neighbor(neighbors, a, b)
        _append_neighbor(neighbors, a, c)
        _append_neighbor(neighbors, b, a)
        _append_neighbor(neighbors, b, c)
        _append_neighbor(neighbors, c, a)
        _append_neighbor(neighbors, c, b)

    degrees = neighbor_degrees(neighbors)
    logger.info(
        "Neighbor graph built",
        vertices=n_vertices,
        pentagons=int(np.sum(degrees == 5)),
        hexagons=int(np.sum(degrees == 6)),
    )
    return neighbors


def neighbor_degrees(neighbors: np.ndarray) -> np.ndarray:
    """Number of populated slots per vertex."""
    return np.sum(neighbors != NO_NEIGHBOR, axis=1)


def neighbors_of(neighbors: np.ndarray, vertex_id: int) -> List[int]:
    """Populated neighbor ids of one vertex, in slot order."""
    return [int(n) for n in neighbors[vertex_id] if n != NO_NEIGHBOR]


def edge_lengths(vertices: np.ndarray, neighbors: np.ndarray, scale: float = 1.0) -> np.ndarray:
    """
    Chord length from each vertex to each of its slot neighbors.

    Args:
        vertices: (N, 3) positions
        neighbors: (N, 6) neighbor table
        scale: Multiplier applied to the lengths (e.g. radius in metres)

    Returns:
        (N, 6) float array, 0.0 in NO_NEIGHBOR slots
    """
    valid = neighbors != NO_NEIGHBOR
    safe = np.where(valid, neighbors, np.arange(len(vertices))[:, None])
    deltas = vertices[safe] - vertices[:, None, :]
    lengths = np.linalg.norm(deltas, axis=2) * scale
    return np.where(valid, lengths, 0.0)
