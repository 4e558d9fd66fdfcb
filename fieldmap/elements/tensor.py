"""
Shape functions of the per-axis families: natural coordinates lie in [-1, 1] along
each axis. Corners are numbered counter-clockwise (the bottom face first for
hexahedra); the serendipity quadrangle appends the midsides of edges 01, 12, 23
and 30.
"""

import numpy as np
from numpy.typing import NDArray

from .element import ElementFamily

_QUAD_CORNERS = np.array(((-1, -1), (1, -1), (1, 1), (-1, 1)), dtype=np.float64)
_HEX_CORNERS = np.array(
    (
        (-1, -1, -1),
        (1, -1, -1),
        (1, 1, -1),
        (-1, 1, -1),
        (-1, -1, 1),
        (1, -1, 1),
        (1, 1, 1),
        (-1, 1, 1),
    ),
    dtype=np.float64,
)


def _multilinear(signs: NDArray):
    """Builds the shape functions prod_k (1 + t_k s_k) / 2 for corner signs `s`."""

    def shape(t: NDArray) -> NDArray:
        return np.prod(0.5 * (1 + signs * t), axis=1)

    def shape_gradient(t: NDArray) -> NDArray:
        factors = 0.5 * (1 + signs * t)  # (n_nodes, n_natural)
        dN = np.empty_like(factors)
        for k in range(signs.shape[1]):
            others = np.prod(np.delete(factors, k, axis=1), axis=1)
            dN[:, k] = 0.5 * signs[:, k] * others
        return dN

    return shape, shape_gradient


_quad4_shape, _quad4_shape_gradient = _multilinear(_QUAD_CORNERS)
_hex8_shape, _hex8_shape_gradient = _multilinear(_HEX_CORNERS)

_QUAD8_NODES = np.vstack(
    [_QUAD_CORNERS, np.array(((0, -1), (1, 0), (0, 1), (-1, 0)), dtype=np.float64)]
)


def _quad8_shape(t: NDArray) -> NDArray:
    xi, eta = t
    xs, es = _QUAD8_NODES[:, 0], _QUAD8_NODES[:, 1]
    N = np.empty(8)
    # corners: (1 + xi xs)(1 + eta es)(xi xs + eta es - 1) / 4
    N[:4] = 0.25 * (1 + xi * xs[:4]) * (1 + eta * es[:4]) * (
        xi * xs[:4] + eta * es[:4] - 1
    )
    # midsides on eta = +-1 edges, then xi = +-1 edges
    N[4] = 0.5 * (1 - xi**2) * (1 - eta)
    N[5] = 0.5 * (1 + xi) * (1 - eta**2)
    N[6] = 0.5 * (1 - xi**2) * (1 + eta)
    N[7] = 0.5 * (1 - xi) * (1 - eta**2)
    return N


def _quad8_shape_gradient(t: NDArray) -> NDArray:
    xi, eta = t
    xs, es = _QUAD_CORNERS[:, 0], _QUAD_CORNERS[:, 1]
    dN = np.empty((8, 2))
    dN[:4, 0] = 0.25 * xs * (1 + eta * es) * (2 * xi * xs + eta * es)
    dN[:4, 1] = 0.25 * es * (1 + xi * xs) * (xi * xs + 2 * eta * es)
    dN[4] = (-xi * (1 - eta), -0.5 * (1 - xi**2))
    dN[5] = (0.5 * (1 - eta**2), -eta * (1 + xi))
    dN[6] = (-xi * (1 + eta), 0.5 * (1 - xi**2))
    dN[7] = (-0.5 * (1 - eta**2), -eta * (1 - xi))
    return dN


QUADRANGLE4 = ElementFamily(
    type="quadrangle4",
    dimension=2,
    simplex=False,
    corners=4,
    reference_nodes=_QUAD_CORNERS,
    edges=tuple(),
    reference_measure=4.0,
    solve="bilinear",
    linear_type=None,
    shape=_quad4_shape,
    shape_gradient=_quad4_shape_gradient,
)

QUADRANGLE8 = ElementFamily(
    type="quadrangle8",
    dimension=2,
    simplex=False,
    corners=4,
    reference_nodes=_QUAD8_NODES,
    edges=((4, 0, 1), (5, 1, 2), (6, 2, 3), (7, 3, 0)),
    reference_measure=4.0,
    solve="newton",
    linear_type="quadrangle4",
    shape=_quad8_shape,
    shape_gradient=_quad8_shape_gradient,
)

HEXAHEDRON8 = ElementFamily(
    type="hexahedron8",
    dimension=3,
    simplex=False,
    corners=8,
    reference_nodes=_HEX_CORNERS,
    edges=tuple(),
    reference_measure=8.0,
    solve="newton",
    linear_type=None,
    shape=_hex8_shape,
    shape_gradient=_hex8_shape_gradient,
)
