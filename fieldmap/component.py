"""
The `FieldMap` component answers field, potential and medium queries from a
precomputed finite-element solution. Every query folds the point into the field
map cell, locates the element that contains it, interpolates with the element's
shape functions and transforms the result back to the frame of the caller.
"""

import dataclasses
from typing import Any, Literal

import numpy as np
from numpy.typing import ArrayLike, NDArray

from fieldmap.config import FieldMapOptions
from fieldmap.diagnostics import Diagnostic
from fieldmap.elements import DegenerateElementException, interpolate, physical_gradient
from fieldmap.fields import PotentialShapeError, Potentials, time_interpolation
from fieldmap.locator import ElementLocator, Location
from fieldmap.mesh import Mesh
from fieldmap.transforms import MappedPoint, Periodicity, map_coordinates, unmap_field

__all__ = ["FieldMap", "FieldResult", "FieldStatus"]

FieldStatus = Literal["ok", "outside_mesh", "non_drift_medium", "convergence_warning"]


def __dir__() -> list[str]:
    return __all__


@dataclasses.dataclass(frozen=True)
class FieldResult:
    """The field at a point.

    Attributes:
        field (NDArray): the field vector `-grad(V)`, of shape `(3,)`; zero outside
            the mesh.
        potential (float | None): the potential, None outside the mesh.
        element (int | None): the element containing the point.
        medium (Any): the medium associated with the material of that element.
        status (FieldStatus): `"outside_mesh"` if no element contains the point,
            `"non_drift_medium"` if the electric field was requested in a material
            that is not a drift medium, `"convergence_warning"` if the local
            coordinates did not converge, `"ok"` otherwise.
        diagnostics (tuple[Diagnostic, ...]): events met while answering.
    """

    field: NDArray
    potential: float | None
    element: int | None
    medium: Any
    status: FieldStatus
    diagnostics: tuple[Diagnostic, ...] = tuple()


class FieldMap:
    """
    Args:
        mesh (Mesh): the mesh; it is prepared here and must not change afterwards.
        potentials (Potentials): the nodal potentials.
        options (FieldMapOptions | None, optional): search options. Defaults to
            `FieldMapOptions()`.
        periodicity (Periodicity | None, optional): symmetries used to fold query
            points into the mesh. Defaults to None.

    Raises:
        PotentialShapeError: if the potentials do not have one value per node.
    """

    def __init__(
        self,
        mesh: Mesh,
        potentials: Potentials,
        *,
        options: FieldMapOptions | None = None,
        periodicity: Periodicity | None = None,
    ):
        if potentials.number_of_nodes != mesh.number_of_nodes:
            raise PotentialShapeError(
                "main", (mesh.number_of_nodes,), potentials.main.shape
            )
        self.mesh = mesh
        self.potentials = potentials
        self.options = options if options is not None else FieldMapOptions()
        self.periodicity = periodicity
        self.locator = ElementLocator(mesh, self.options)

    def _locate(self, point: ArrayLike) -> tuple[MappedPoint, Location]:
        mapped = map_coordinates(point, self.periodicity)
        return mapped, self.locator.locate(mapped.position)

    def _nodal(self, location: Location, values: NDArray) -> NDArray:
        return values[list(self.mesh.element_nodes(location.element))]

    def _interpolate(self, location: Location, values: NDArray) -> float:
        family = self.mesh.element_family(location.element)
        return float(
            interpolate(family, location.coordinates, self._nodal(location, values))
        )

    def locate_point(self, point: ArrayLike) -> Location:
        """Locates the element containing `point` (after folding it into the field
        map cell)."""
        return self._locate(point)[1]

    def evaluate_potential(
        self, point: ArrayLike, field_name: str | None = None
    ) -> float | None:
        """
        The main potential (`field_name=None`) or the weighting potential of
        electrode `field_name` at `point`. None if there is no such electrode or the
        point is outside the mesh.
        """
        values = self.potentials.get(field_name)
        if values is None:
            return None
        _, location = self._locate(point)
        if not location.found:
            return None
        return self._interpolate(location, values)

    def evaluate_field(
        self, point: ArrayLike, field_name: str | None = None
    ) -> FieldResult | None:
        """
        The field `-grad(V)` of the main potential (`field_name=None`) or of the
        weighting potential of electrode `field_name` at `point`. None if there is no
        such electrode.
        """
        values = self.potentials.get(field_name)
        if values is None:
            return None
        mapped, location = self._locate(point)
        if not location.found:
            return FieldResult(
                np.zeros(3), None, None, None, "outside_mesh", location.diagnostics
            )

        i = location.element
        element = self.mesh.elements[i]
        family = self.mesh.element_family(i)
        nodal = self._nodal(location, values)
        try:
            gradient = physical_gradient(
                family, location.coordinates, self.mesh.element_positions(i), nodal
            )
        except DegenerateElementException as e:
            diagnostic = Diagnostic("degenerate", f"Element {i}: {e}", i, tuple(point))
            return FieldResult(
                np.zeros(3),
                None,
                None,
                None,
                "outside_mesh",
                location.diagnostics + (diagnostic,),
            )

        field = np.zeros(3)
        field[: family.dimension] = -gradient
        material = self.mesh.materials[element.material]

        status: FieldStatus = "ok"
        if field_name is None and not material.drift_medium:
            status = "non_drift_medium"
        elif not location.converged:
            status = "convergence_warning"

        return FieldResult(
            unmap_field(field, mapped),
            float(interpolate(family, location.coordinates, nodal)),
            i,
            material.medium,
            status,
            location.diagnostics,
        )

    def electric_field(self, point: ArrayLike) -> FieldResult:
        return self.evaluate_field(point)

    def weighting_field(self, point: ArrayLike, label: str) -> FieldResult | None:
        return self.evaluate_field(point, label)

    def weighting_potential(self, point: ArrayLike, label: str) -> float | None:
        return self.evaluate_potential(point, label)

    def delayed_weighting_potential(
        self, point: ArrayLike, time: float, label: str
    ) -> float | None:
        """
        The delayed weighting potential of electrode `label` at `point` and `time`,
        linearly interpolated between the bracketing time samples (clamped to the
        sampled range). None if there is no such electrode or the point is outside
        the mesh.
        """
        slices = self.potentials.delayed_weighting.get(label)
        if slices is None or len(self.potentials.times) == 0:
            return None
        _, location = self._locate(point)
        if not location.found:
            return None
        i0, i1, f0, f1 = time_interpolation(self.potentials.times, time)
        v0 = self._interpolate(location, slices[i0])
        if f1 == 0:
            return v0
        return f0 * v0 + f1 * self._interpolate(location, slices[i1])

    def get_medium(self, point: ArrayLike) -> Any:
        """The medium of the material at `point`, None outside the mesh."""
        _, location = self._locate(point)
        if not location.found:
            return None
        element = self.mesh.elements[location.element]
        return self.mesh.materials[element.material].medium

    def add_weighting_potential(self, label: str, values: ArrayLike) -> None:
        """Registers the weighting potential of an electrode. Not to be called while
        queries are running."""
        self.potentials.add_weighting_potential(label, values)
