"""
Shape functions of the simplex families. Natural coordinates are barycentric:
one coordinate per corner, summing to one. The quadratic families add one
midside node per edge, ordered lexicographically by corner pair
(01, 02, 12 for triangles; 01, 02, 03, 12, 13, 23 for tetrahedra).
"""

import itertools

import numpy as np
from numpy.typing import NDArray

from .element import ElementFamily


def _linear_shape(t: NDArray) -> NDArray:
    return np.array(t, dtype=np.float64)


def _linear_shape_gradient(t: NDArray) -> NDArray:
    return np.eye(len(t))


def _quadratic(corners: int):
    pairs = list(itertools.combinations(range(corners), 2))
    n_nodes = corners + len(pairs)

    def shape(t: NDArray) -> NDArray:
        # corner: t_i (2 t_i - 1) ; midside: 4 t_i t_j
        N = np.empty(n_nodes)
        N[:corners] = t * (2 * t - 1)
        for k, (i, j) in enumerate(pairs):
            N[corners + k] = 4 * t[i] * t[j]
        return N

    def shape_gradient(t: NDArray) -> NDArray:
        dN = np.zeros((n_nodes, corners))
        dN[np.arange(corners), np.arange(corners)] = 4 * t - 1
        for k, (i, j) in enumerate(pairs):
            dN[corners + k, i] = 4 * t[j]
            dN[corners + k, j] = 4 * t[i]
        return dN

    return pairs, shape, shape_gradient


def _reference_nodes(corners: int, pairs: list[tuple[int, int]]) -> NDArray:
    eye = np.eye(corners)
    return np.vstack([eye, *((eye[i] + eye[j]) * 0.5 for i, j in pairs)])


def _edges(corners: int, pairs: list[tuple[int, int]]):
    return tuple((corners + k, i, j) for k, (i, j) in enumerate(pairs))


_tri_pairs, _tri_shape, _tri_shape_gradient = _quadratic(3)
_tet_pairs, _tet_shape, _tet_shape_gradient = _quadratic(4)

TRIANGLE3 = ElementFamily(
    type="triangle3",
    dimension=2,
    simplex=True,
    corners=3,
    reference_nodes=np.eye(3),
    edges=tuple(),
    reference_measure=0.5,
    solve="affine",
    linear_type=None,
    shape=_linear_shape,
    shape_gradient=_linear_shape_gradient,
)

TRIANGLE6 = ElementFamily(
    type="triangle6",
    dimension=2,
    simplex=True,
    corners=3,
    reference_nodes=_reference_nodes(3, _tri_pairs),
    edges=_edges(3, _tri_pairs),
    reference_measure=0.5,
    solve="newton",
    linear_type="triangle3",
    shape=_tri_shape,
    shape_gradient=_tri_shape_gradient,
)

TETRAHEDRON4 = ElementFamily(
    type="tetrahedron4",
    dimension=3,
    simplex=True,
    corners=4,
    reference_nodes=np.eye(4),
    edges=tuple(),
    reference_measure=1.0 / 6.0,
    solve="affine",
    linear_type=None,
    shape=_linear_shape,
    shape_gradient=_linear_shape_gradient,
)

TETRAHEDRON10 = ElementFamily(
    type="tetrahedron10",
    dimension=3,
    simplex=True,
    corners=4,
    reference_nodes=_reference_nodes(4, _tet_pairs),
    edges=_edges(4, _tet_pairs),
    reference_measure=1.0 / 6.0,
    solve="newton",
    linear_type="tetrahedron4",
    shape=_tet_shape,
    shape_gradient=_tet_shape_gradient,
)
