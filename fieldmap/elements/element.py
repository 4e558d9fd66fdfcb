import collections.abc as colltypes
import dataclasses
import itertools
from typing import Literal

import numpy as np
from numpy.typing import ArrayLike, NDArray

ElementType = Literal[
    "triangle3",
    "triangle6",
    "quadrangle4",
    "quadrangle8",
    "tetrahedron4",
    "tetrahedron10",
    "hexahedron8",
]

SolveMethod = Literal["affine", "bilinear", "newton"]


class DegenerateElementException(Exception):
    """Raised when the Jacobian of an element is singular, so that no meaningful
    local coordinates or gradients can be computed.

    Args:
        det (float): the Jacobian determinant that triggered the exception.
        coordinates (ArrayLike): the natural coordinates at which it was evaluated.
    """

    def __init__(self, det: float, coordinates: ArrayLike):
        coordinates = np.atleast_1d(np.asarray(coordinates, dtype=np.float64))
        super().__init__(
            "Element has a singular Jacobian!\n"
            + f"   det = {det:e} at local coordinates"
            + f"({', '.join(f'{c:.6f}' for c in coordinates)})"
        )

        self.det = det
        self.coordinates = coordinates


@dataclasses.dataclass(kw_only=True, frozen=True, eq=False)
class ElementFamily:
    """
    Describes one isoparametric element family. Positions and fields use the same
    shape functions, given as pure functions of the natural coordinates.

    Simplex families use barycentric natural coordinates (one per corner, summing
    to one); the others use one coordinate per axis in [-1, 1].

    Attributes:
        type (ElementType): the tag of the family.
        dimension (int): the physical dimension of the element (2 or 3).
        simplex (bool): whether the natural coordinates are barycentric.
        corners (int): the number of corner nodes; they come first in the node
            ordering.
        reference_nodes (NDArray): natural coordinates of every node, of shape
            `(n_nodes, n_natural)`.
        edges (tuple[tuple[int, int, int], ...]): `(midside, a, b)` for every
            midside node sitting between corners `a` and `b`.
        reference_measure (float): the measure of the reference element, such that
            `reference_measure * |det J|` is the measure of an affine element.
        solve (SolveMethod): how local coordinates are obtained.
        linear_type (ElementType | None): the family spanned by the corner nodes
            alone, used for starting estimates of curved elements.
        shape (Callable): `shape(t) -> N` of shape `(n_nodes,)`.
        shape_gradient (Callable): `shape_gradient(t) -> dN` of shape
            `(n_nodes, n_natural)`, with `dN[i, j]` the derivative of `N_i` with
            respect to `t_j`.
    """

    type: ElementType
    dimension: int
    simplex: bool
    corners: int
    reference_nodes: NDArray
    edges: tuple[tuple[int, int, int], ...]
    reference_measure: float
    solve: SolveMethod
    linear_type: ElementType | None
    shape: colltypes.Callable[[NDArray], NDArray]
    shape_gradient: colltypes.Callable[[NDArray], NDArray]

    @property
    def number_of_nodes(self) -> int:
        return self.reference_nodes.shape[0]

    @property
    def number_of_natural_coordinates(self) -> int:
        return self.reference_nodes.shape[1]

    def natural_centroid(self) -> NDArray:
        """The centroid of the reference element, in natural coordinates."""
        n = self.number_of_natural_coordinates
        if self.simplex:
            return np.full(n, 1.0 / n)
        return np.zeros(n)


def interpolate(family: ElementFamily, t: ArrayLike, values: ArrayLike) -> NDArray:
    """Evaluates the basis expansion with nodal coefficients `values` at natural
    coordinates `t`.

    Args:
        family (ElementFamily): the element family.
        t (ArrayLike): natural coordinates.
        values (ArrayLike): an array of shape `(n_nodes, ...)`; scalars per node
            (potentials) or vectors per node (positions).

    Returns:
        NDArray: the interpolated value, of shape `values.shape[1:]`.
    """
    return np.tensordot(
        family.shape(np.asarray(t, dtype=np.float64)),
        np.asarray(values, dtype=np.float64),
        axes=1,
    )


def natural_to_physical(
    family: ElementFamily, t: ArrayLike, positions: ArrayLike
) -> NDArray:
    """Maps natural coordinates to a physical position. `positions` has shape
    `(n_nodes, dimension)`."""
    return interpolate(family, t, positions)


def jacobian(
    family: ElementFamily, t: ArrayLike, positions: ArrayLike
) -> tuple[NDArray, float]:
    """
    Computes the Jacobian of the natural-to-physical map at `t`.

    For per-axis families this is the `dimension x dimension` matrix
    `J[a, j] = dx_a / dt_j`. For simplex families, whose natural coordinates are
    constrained to sum to one, the constraint is put on the first row, giving the
    square matrix `[1 ... 1; dx/dt]`. In both cases, the sign of the determinant
    gives the orientation of the element and zero indicates degeneracy.

    Args:
        family (ElementFamily): the element family.
        t (ArrayLike): natural coordinates.
        positions (ArrayLike): node positions of shape `(n_nodes, dimension)`.

    Returns:
        tuple[NDArray, float]: `(matrix, det)`.
    """
    dN = family.shape_gradient(np.asarray(t, dtype=np.float64))
    tangents = dN.T @ np.asarray(positions, dtype=np.float64)  # (n_natural, dim)
    if family.simplex:
        matrix = np.vstack([np.ones(family.number_of_natural_coordinates), tangents.T])
    else:
        matrix = tangents.T
    return matrix, float(np.linalg.det(matrix))


def physical_gradient(
    family: ElementFamily, t: ArrayLike, positions: ArrayLike, values: ArrayLike
) -> NDArray:
    """
    Computes the gradient of the scalar field with nodal coefficients `values`
    with respect to the physical coordinates, at natural coordinates `t`.

    The natural gradient `g` is mapped through the inverse Jacobian:
    `grad = J^-T g`. For simplex families the first component of `A^-T g`
    multiplies the constraint row and is dropped.

    Args:
        family (ElementFamily): the element family.
        t (ArrayLike): natural coordinates.
        positions (ArrayLike): node positions of shape `(n_nodes, dimension)`.
        values (ArrayLike): nodal values of shape `(n_nodes,)`.

    Raises:
        DegenerateElementException: if the Jacobian is singular at `t`.

    Returns:
        NDArray: the gradient, of shape `(dimension,)`.
    """
    t = np.asarray(t, dtype=np.float64)
    matrix, det = jacobian(family, t, positions)
    if det == 0.0:
        raise DegenerateElementException(det, t)
    natural = family.shape_gradient(t).T @ np.asarray(values, dtype=np.float64)
    try:
        gradient = np.linalg.solve(matrix.T, natural)
    except np.linalg.LinAlgError:
        raise DegenerateElementException(det, t)
    return gradient[1:] if family.simplex else gradient


def in_natural_domain(family: ElementFamily, t: ArrayLike, tolerance: float) -> bool:
    """Whether `t` lies in the reference element, allowing an outward slack of
    `tolerance`."""
    return boundary_margin(family, t) >= -tolerance


def boundary_margin(family: ElementFamily, t: ArrayLike) -> float:
    """
    The signed distance (in natural coordinates) from `t` to the boundary of the
    reference element: positive inside, zero on the boundary, negative outside.
    """
    t = np.asarray(t, dtype=np.float64)
    if family.simplex:
        return float(min(np.min(t), np.min(1.0 - t)))
    return float(np.min(1.0 - np.abs(t)))


def _quadrature(family: ElementFamily) -> tuple[NDArray, NDArray]:
    """Points and weights integrating the Jacobian determinant of `family` exactly:
    Gauss-Legendre 2 points per axis for per-axis families, the degree 2 (triangle)
    and degree 3 (tetrahedron) rules for simplices."""
    n = family.number_of_natural_coordinates
    if not family.simplex:
        g = 1 / np.sqrt(3)
        points = np.array(list(itertools.product((-g, g), repeat=n)))
        return points, np.ones(len(points))
    if n == 3:
        points = np.array([np.roll((2 / 3, 1 / 6, 1 / 6), k) for k in range(3)])
        return points, np.full(3, 1 / 6)
    points = np.array(
        [np.full(4, 0.25)] + [np.roll((0.5, 1 / 6, 1 / 6, 1 / 6), k) for k in range(4)]
    )
    weights = np.array([-4 / 5] + [9 / 20] * 4) / 6
    return points, weights


def element_measure(family: ElementFamily, positions: ArrayLike) -> float:
    """The area (2D) or volume (3D) of an element, integrating `|det J|` over the
    reference element."""
    points, weights = _quadrature(family)
    return float(
        sum(w * abs(jacobian(family, t, positions)[1]) for t, w in zip(points, weights))
    )
