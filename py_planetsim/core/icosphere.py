"""Icosphere mesh generation.

Builds a triangulated unit sphere by repeatedly splitting every face of a
regular icosahedron into four, inserting the normalized midpoint of each
edge. Midpoints are shared between the two faces adjacent to an edge, so a
mesh of depth k has exactly 10 * 4**k + 2 vertices.
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np
import structlog

logger = structlog.get_logger()

_ICO_X = 0.525731112119133606
_ICO_Z = 0.850650808352039932

ICOSAHEDRON_VERTICES = np.array(
    [
        [-_ICO_X, 0.0, _ICO_Z],
        [_ICO_X, 0.0, _ICO_Z],
        [-_ICO_X, 0.0, -_ICO_Z],
        [_ICO_X, 0.0, -_ICO_Z],
        [0.0, _ICO_Z, _ICO_X],
        [0.0, _ICO_Z, -_ICO_X],
        [0.0, -_ICO_Z, _ICO_X],
        [0.0, -_ICO_Z, -_ICO_X],
        [_ICO_Z, _ICO_X, 0.0],
        [-_ICO_Z, _ICO_X, 0.0],
        [_ICO_Z, -_ICO_X, 0.0],
        [-_ICO_Z, -_ICO_X, 0.0],
    ],
    dtype=np.float64,
)

ICOSAHEDRON_TRIANGLES = np.array(
    [
        [0, 4, 1], [0, 9, 4], [9, 5, 4], [4, 5, 8], [4, 8, 1],
        [8, 10, 1], [8, 3, 10], [5, 3, 8], [5, 2, 3], [2, 7, 3],
        [7, 10, 3], [7, 6, 10], [7, 11, 6], [11, 0, 6], [0, 1, 6],
        [6, 1, 10], [9, 0, 11], [9, 11, 2], [9, 2, 5], [7, 2, 11],
    ],
    dtype=np.int64,
)

# Number of vertices of the base icosahedron; these keep degree 5 forever.
BASE_VERTEX_COUNT = 12


@dataclass
class IcosphereMesh:
    """Indexed triangle mesh on the unit sphere."""

    subdivisions: int
    vertices: np.ndarray   # (N, 3) unit vectors
    triangles: np.ndarray  # (M, 3) vertex ids

    @property
    def n_vertices(self) -> int:
        return len(self.vertices)

    @property
    def n_triangles(self) -> int:
        return len(self.triangles)


def expected_vertex_count(subdivisions: int) -> int:
    """Vertex count of an icosphere of the given depth."""
    return 10 * 4 ** subdivisions + 2


def _vertex_for_edge(
    lookup: Dict[Tuple[int, int], int],
    vertices: List[np.ndarray],
    first: int,
    second: int,
) -> int:
    """
    Return the id of the midpoint vertex of an edge, creating it on first use.

    The lookup key is the unordered pair, so both faces sharing the edge get
    the same vertex.
    """
    key = (first, second) if first > second else (second, first)
    index = lookup.get(key)
    if index is None:
        index = len(vertices)
        midpoint = vertices[key[0]] + vertices[key[1]]
        vertices.append(midpoint / np.linalg.norm(midpoint))
        lookup[key] = index
    return index


def subdivide(vertices: np.ndarray, triangles: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split every triangle into four.

    Args:
        vertices: (N, 3) unit vectors
        triangles: (M, 3) vertex ids

    Returns:
        Tuple of (vertices, triangles) for the refined mesh; existing vertex
        ids are preserved and new midpoints are appended.
    """
    lookup: Dict[Tuple[int, int], int] = {}
    vertex_list = list(vertices)
    result = np.empty((len(triangles) * 4, 3), dtype=np.int64)

    for t, (a, b, c) in enumerate(triangles.tolist()):
        ab = _vertex_for_edge(lookup, vertex_list, a, b)
        bc = _vertex_for_edge(lookup, vertex_list, b, c)
        ca = _vertex_for_edge(lookup, vertex_list, c, a)

        result[t * 4 + 0] = (a, ab, ca)
        result[t * 4 + 1] = (b, bc, ab)
        result[t * 4 + 2] = (c, ca, bc)
        result[t * 4 + 3] = (ab, bc, ca)

    return np.array(vertex_list, dtype=np.float64), result


def generate_icosphere(subdivisions: int) -> IcosphereMesh:
    """
    Generate an icosphere of the given subdivision depth.

    Args:
        subdivisions: Number of refinement levels (0 = plain icosahedron)

    Returns:
        IcosphereMesh with 10 * 4**subdivisions + 2 vertices
    """
    if subdivisions < 0:
        raise ValueError(f"subdivisions must be >= 0, got {subdivisions}")

    vertices = ICOSAHEDRON_VERTICES.copy()
    triangles = ICOSAHEDRON_TRIANGLES.copy()

    for _ in range(subdivisions):
        vertices, triangles = subdivide(vertices, triangles)

    logger.info(
        "Icosphere generated",
        subdivisions=subdivisions,
        vertices=len(vertices),
        triangles=len(triangles),
    )

    return IcosphereMesh(subdivisions=subdivisions, vertices=vertices, triangles=triangles)
