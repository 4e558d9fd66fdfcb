import dataclasses
import logging

import numpy as np
from numpy.typing import ArrayLike, NDArray

from fieldmap.config import FieldMapOptions
from fieldmap.diagnostics import Diagnostic
from fieldmap.elements import DegenerateElementException, boundary_margin, jacobian
from fieldmap.elements.local_coordinates import LocalCoordinates, local_coordinates
from fieldmap.mesh import (
    BoundingBoxTree,
    CandidateSearch,
    ExhaustiveSearch,
    Mesh,
    padded_boxes,
)

__all__ = ["ElementLocator", "Location"]

logger = logging.getLogger(__name__)


def __dir__() -> list[str]:
    return __all__


@dataclasses.dataclass(frozen=True)
class Location:
    """The result of an element search.

    Attributes:
        element (int | None): the containing element, or None if the point is
            outside the mesh.
        coordinates (NDArray | None): natural coordinates in that element.
        converged (bool): whether the local coordinates converged.
        diagnostics (tuple[Diagnostic, ...]): events met during the search.
    """

    element: int | None
    coordinates: NDArray | None = None
    converged: bool = True
    diagnostics: tuple[Diagnostic, ...] = tuple()

    @property
    def found(self) -> bool:
        return self.element is not None


class ElementLocator:
    """
    Finds the element of a mesh that contains a point.

    Candidates come from the bounding box tree when `use_spatial_index` is set and
    from a test of every bounding box otherwise; they are visited in ascending
    index order. Degenerate elements (and conductors, when background elements are
    deleted) are never solved for. A candidate matches when its natural coordinates
    lie in the reference element up to `domain_tolerance`; the first match is
    returned. Matches where the Jacobian determinant does not have the sign of the
    element's orientation lie in a folded part of the element and are rejected. With
    `check_multiple_elements`, every candidate is visited and a
    point lying strictly inside one element while matching another is reported as
    ambiguous; the lowest index still wins.
    """

    def __init__(self, mesh: Mesh, options: FieldMapOptions | None = None):
        self.mesh = mesh
        self.options = options if options is not None else FieldMapOptions()
        mesh.prepare()

        lo, hi = padded_boxes(mesh, self.options.bounding_box_margin)
        self.exhaustive: CandidateSearch = ExhaustiveSearch(lo, hi)
        self.search: CandidateSearch = (
            BoundingBoxTree(lo, hi)
            if self.options.use_spatial_index
            else self.exhaustive
        )

        active = ~mesh.degenerate
        if self.options.delete_background_elements:
            conductor = np.array(
                [mesh.materials[e.material].conductor for e in mesh.elements],
                dtype=bool,
            )
            active &= ~conductor
        self.active: NDArray = active

    def locate(self, point: ArrayLike) -> Location:
        """
        Args:
            point (ArrayLike): the point in field map coordinates, of shape `(3,)`;
                2D meshes ignore `z`.

        Returns:
            Location: the containing element and its natural coordinates, or a
                location with `element=None`.
        """
        point = np.asarray(point, dtype=np.float64)[: self.mesh.dimension]
        diagnostics: list[Diagnostic] = []

        candidates = self.search.candidates(point)
        matches = self._scan(candidates, point, diagnostics)
        if (
            not matches
            and self.search is not self.exhaustive
            and self.options.fallback_to_exhaustive
        ):
            remaining = np.setdiff1d(self.exhaustive.candidates(point), candidates)
            matches = self._scan(remaining, point, diagnostics)

        if not matches:
            return Location(None, diagnostics=tuple(diagnostics))

        if len(matches) > 1:
            self._check_ambiguity(matches, point, diagnostics)

        element, solution = matches[0]
        return Location(
            element,
            solution.coordinates,
            solution.converged,
            tuple(diagnostics),
        )

    def _scan(
        self, candidates: NDArray, point: NDArray, diagnostics: list[Diagnostic]
    ) -> list[tuple[int, LocalCoordinates]]:
        matches = []
        for i in candidates:
            i = int(i)
            if not self.active[i]:
                continue
            solution = self._solve(i, point, diagnostics)
            if solution is None:
                continue
            family = self.mesh.element_family(i)
            margin = boundary_margin(family, solution.coordinates)
            if margin < -self.options.domain_tolerance:
                continue
            if not self._orientation_holds(i, solution, point, diagnostics):
                continue
            matches.append((i, solution))
            if not self.options.check_multiple_elements:
                break
        return matches

    def _solve(
        self, i: int, point: NDArray, diagnostics: list[Diagnostic]
    ) -> LocalCoordinates | None:
        family = self.mesh.element_family(i)
        try:
            solution = local_coordinates(
                family,
                self.mesh.element_positions(i),
                point,
                weights=self.mesh.affine_weights.get(i),
                tolerance=self.options.newton_tolerance,
                max_iterations=self.options.newton_max_iterations,
            )
        except DegenerateElementException as e:
            diagnostics.append(
                Diagnostic("degenerate", f"Element {i}: {e}", i, tuple(point))
            )
            return None
        if not solution.converged and self.options.convergence_warnings:
            diagnostics.append(
                Diagnostic(
                    "convergence",
                    f"Local coordinates in element {i} did not converge after"
                    f" {solution.iterations} iterations at {tuple(point)}.",
                    i,
                    tuple(point),
                )
            )
        return solution

    def _orientation_holds(
        self,
        i: int,
        solution: LocalCoordinates,
        point: NDArray,
        diagnostics: list[Diagnostic],
    ) -> bool:
        family = self.mesh.element_family(i)
        if family.solve == "affine":
            return True
        _, det = jacobian(family, solution.coordinates, self.mesh.element_positions(i))
        if np.sign(det) == self.mesh.orientation[i]:
            return True
        diagnostics.append(
            Diagnostic(
                "degenerate",
                f"Element {i} is folded: det J = {det:e} at {tuple(point)} against"
                f" orientation {int(self.mesh.orientation[i]):+d}.",
                i,
                tuple(point),
            )
        )
        return False

    def _check_ambiguity(self, matches, point, diagnostics) -> None:
        interior = [
            i
            for i, solution in matches
            if boundary_margin(self.mesh.element_family(i), solution.coordinates)
            > self.options.domain_tolerance
        ]
        if interior:
            elements = [i for i, _ in matches]
            logger.debug("Point %s found in elements %s.", tuple(point), elements)
            diagnostics.append(
                Diagnostic(
                    "ambiguous",
                    f"Point {tuple(point)} is contained in {len(elements)} elements"
                    f" {elements}; using element {elements[0]}.",
                    elements[0],
                    tuple(point),
                )
            )
