import dataclasses

import numpy as np
from numpy.typing import ArrayLike, NDArray

from fieldmap.config import (
    DEGENERACY_TOLERANCE,
    NEWTON_MAX_ITERATIONS,
    NEWTON_TOLERANCE,
)

from . import ELEMENT_FAMILIES
from .element import (
    DegenerateElementException,
    ElementFamily,
    jacobian,
    natural_to_physical,
)

# Newton iterates are kept within this distance of the reference element.
_NEWTON_BOX = 1.0

_QUAD_SIGNS = np.array(((-1, -1), (1, -1), (1, 1), (-1, 1)), dtype=np.float64)


@dataclasses.dataclass(frozen=True)
class LocalCoordinates:
    """Natural coordinates of a point in an element.

    Attributes:
        coordinates (NDArray): the natural coordinates.
        converged (bool): `False` if an iterative solve hit its iteration cap; the
            coordinates are then the best estimate found.
        iterations (int): the number of Newton steps taken (0 for direct solves).
    """

    coordinates: NDArray
    converged: bool = True
    iterations: int = 0


def element_size(positions: ArrayLike) -> float:
    """The largest extent of the node positions along any axis."""
    return float(np.max(np.ptp(np.asarray(positions), axis=0)))


def affine_weights(positions: ArrayLike) -> NDArray:
    """
    Computes the matrix `W` of a linear simplex such that the barycentric
    coordinates of a point `x` are `W @ [1, *x]`. Only the corner nodes are used.

    Args:
        positions (ArrayLike): positions of shape `(n_nodes, dimension)`; the first
            `dimension + 1` rows are the corners.

    Raises:
        DegenerateElementException: if the corners do not span a simplex.

    Returns:
        NDArray: the weights, of shape `(dimension + 1, dimension + 1)`.
    """
    positions = np.asarray(positions, dtype=np.float64)
    dim = positions.shape[1]
    corners = positions[: dim + 1]
    matrix = np.vstack([np.ones(dim + 1), corners.T])
    det = float(np.linalg.det(matrix))
    if abs(det) <= DEGENERACY_TOLERANCE * element_size(corners) ** dim:
        raise DegenerateElementException(det, np.full(dim + 1, 1.0 / (dim + 1)))
    return np.linalg.inv(matrix)


def _affine_coordinates(positions, point, weights) -> NDArray:
    if weights is None:
        weights = affine_weights(positions)
    return weights @ np.concatenate(([1.0], point))


def _bilinear_coordinates(positions, point) -> NDArray:
    """Inverts the bilinear map of a quadrangle in closed form.

    With x = a0 + a1 xi + a2 eta + a3 xi eta (and likewise y with b), eliminating
    xi leaves a quadratic in eta; the root closest to the reference square wins.
    """
    corners = np.asarray(positions, dtype=np.float64)[:4]
    basis = 0.25 * np.array(
        [
            np.ones(4),
            _QUAD_SIGNS[:, 0],
            _QUAD_SIGNS[:, 1],
            _QUAD_SIGNS[:, 0] * _QUAD_SIGNS[:, 1],
        ]
    )
    (a0, b0), (a1, b1), (a2, b2), (a3, b3) = basis @ corners
    dx, dy = point[0] - a0, point[1] - b0

    area = a1 * b2 - a2 * b1
    size = element_size(corners)
    if abs(area) <= DEGENERACY_TOLERANCE * size**2:
        raise DegenerateElementException(area, (0.0, 0.0))

    A = a3 * b2 - a2 * b3
    B = area + (b3 * dx - a3 * dy)
    C = b1 * dx - a1 * dy

    if abs(A) <= DEGENERACY_TOLERANCE * abs(area):
        # parallelogram
        roots = [-C / B] if B != 0 else []
    else:
        discriminant = max(B * B - 4 * A * C, 0.0)
        q = -0.5 * (B + np.copysign(np.sqrt(discriminant), B))
        roots = [q / A] + ([C / q] if q != 0 else [])

    best = None
    for eta in roots:
        den_x = a1 + a3 * eta
        den_y = b1 + b3 * eta
        if den_x == 0 and den_y == 0:
            continue
        if abs(den_x) >= abs(den_y):
            xi = (dx - a2 * eta) / den_x
        else:
            xi = (dy - b2 * eta) / den_y
        candidate = np.array((xi, eta))
        if best is None or np.max(np.abs(candidate)) < np.max(np.abs(best)):
            best = candidate

    if best is None:
        raise DegenerateElementException(area, (0.0, 0.0))
    return best


def _project(family: ElementFamily, t: NDArray) -> NDArray:
    if family.simplex:
        t = np.clip(t, -_NEWTON_BOX, 1 + _NEWTON_BOX)
        return t + (1.0 - t.sum()) / len(t)
    return np.clip(t, -1 - _NEWTON_BOX, 1 + _NEWTON_BOX)


def _starting_point(family: ElementFamily, positions, point) -> NDArray:
    """The linear estimate from the corner nodes, or the centroid when there is
    none."""
    if family.linear_type is None:
        return family.natural_centroid()
    linear = ELEMENT_FAMILIES[family.linear_type]
    try:
        estimate = local_coordinates(linear, positions[: family.corners], point)
    except DegenerateElementException:
        return family.natural_centroid()
    return _project(family, estimate.coordinates)


def _newton(
    family: ElementFamily,
    positions: NDArray,
    point: NDArray,
    tolerance: float,
    max_iterations: int,
) -> LocalCoordinates:
    size = element_size(positions)
    threshold = tolerance * size
    singular = DEGENERACY_TOLERANCE * size**family.dimension

    t = _starting_point(family, positions, point)
    best, best_norm = t, np.inf
    for iteration in range(max_iterations + 1):
        residual = point - natural_to_physical(family, t, positions)
        norm = float(np.linalg.norm(residual))
        if norm < best_norm:
            best, best_norm = t, norm
        if norm <= threshold:
            return LocalCoordinates(t, True, iteration)
        if iteration == max_iterations:
            break

        matrix, det = jacobian(family, t, positions)
        if abs(det) <= singular:
            raise DegenerateElementException(det, t)
        rhs = np.concatenate(([0.0], residual)) if family.simplex else residual
        t = _project(family, t + np.linalg.solve(matrix, rhs))

    return LocalCoordinates(best, False, max_iterations)


def local_coordinates(
    family: ElementFamily,
    positions: ArrayLike,
    point: ArrayLike,
    *,
    weights: NDArray | None = None,
    tolerance: float = NEWTON_TOLERANCE,
    max_iterations: int = NEWTON_MAX_ITERATIONS,
) -> LocalCoordinates:
    """
    Computes the natural coordinates of the physical point `point` with respect
    to an element.

    Linear simplices are solved directly from their affine relation (`weights`
    may hold the cached result of `affine_weights`), linear quadrangles by the
    closed-form inverse of the bilinear map, and the other families by a Newton
    iteration started from the linear estimate of the corner nodes. The Newton
    iteration stops once the physical residual falls below
    `tolerance * element_size(positions)`. If it does not within `max_iterations`
    steps, the best estimate is returned with `converged=False`; the caller decides
    whether to trust it.

    The returned coordinates are not checked against the natural domain: points
    outside the element produce coordinates outside of it.

    Args:
        family (ElementFamily): the element family.
        positions (ArrayLike): node positions of shape `(n_nodes, dimension)`.
        point (ArrayLike): the physical point, of shape `(dimension,)`.
        weights (NDArray | None, optional): cached affine weights of a linear
            simplex. Defaults to None.
        tolerance (float, optional): relative residual tolerance. Defaults to
            `NEWTON_TOLERANCE`.
        max_iterations (int, optional): the Newton iteration cap. Defaults to
            `NEWTON_MAX_ITERATIONS`.

    Raises:
        DegenerateElementException: if the element (or its Jacobian along the
            iteration) is singular.

    Returns:
        LocalCoordinates: the coordinates and the convergence flag.
    """
    positions = np.asarray(positions, dtype=np.float64)
    point = np.asarray(point, dtype=np.float64)[: family.dimension]

    if family.solve == "affine":
        return LocalCoordinates(_affine_coordinates(positions, point, weights))
    if family.solve == "bilinear":
        return LocalCoordinates(_bilinear_coordinates(positions, point))
    return _newton(family, positions, point, tolerance, max_iterations)
