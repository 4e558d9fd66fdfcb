import dataclasses
import itertools
import logging
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from fieldmap.config import DEGENERACY_TOLERANCE
from fieldmap.elements import ELEMENT_FAMILIES, ElementFamily, ElementType
from fieldmap.elements.element import element_measure, jacobian
from fieldmap.elements.local_coordinates import affine_weights

__all__ = ["Element", "Material", "Mesh", "MeshIntegrityError"]

logger = logging.getLogger(__name__)

# quadrangles whose corners 2 and 3 coincide, as the triangles they span
_COLLAPSED: dict[str, tuple[ElementType, tuple[int, ...]]] = {
    "quadrangle4": ("triangle3", (0, 1, 2)),
    "quadrangle8": ("triangle6", (0, 1, 2, 4, 7, 5)),
}


def __dir__() -> list[str]:
    return __all__


class MeshIntegrityError(Exception):
    """Raised when the mesh data violates its contract (node or material indices
    out of range, wrong node counts, mixed dimensions). Continuing with such data
    would silently corrupt results."""


@dataclasses.dataclass(kw_only=True, frozen=True)
class Element:
    type: ElementType
    nodes: tuple[int, ...]
    material: int = 0

    def __post_init__(self):
        if self.type not in ELEMENT_FAMILIES:
            raise MeshIntegrityError(f"Unknown element type '{self.type}'.")
        expected = ELEMENT_FAMILIES[self.type].number_of_nodes
        if len(self.nodes) != expected:
            raise MeshIntegrityError(
                f"A {self.type} element has {expected} nodes, got {len(self.nodes)}."
            )
        object.__setattr__(self, "nodes", tuple(int(n) for n in self.nodes))

    @property
    def family(self) -> ElementFamily:
        return ELEMENT_FAMILIES[self.type]

    @property
    def collapsed(self) -> bool:
        return self.type in _COLLAPSED and self.nodes[2] == self.nodes[3]

    @property
    def interpolation_family(self) -> ElementFamily:
        """The family used to interpolate inside the element. A collapsed
        quadrangle is interpolated as a triangle; its midside between corners 2
        and 3 is ignored."""
        if self.collapsed:
            return ELEMENT_FAMILIES[_COLLAPSED[self.type][0]]
        return self.family

    @property
    def interpolation_nodes(self) -> tuple[int, ...]:
        """The nodes of the element, in the order of `interpolation_family`."""
        if self.collapsed:
            return tuple(self.nodes[k] for k in _COLLAPSED[self.type][1])
        return self.nodes


@dataclasses.dataclass(kw_only=True)
class Material:
    """A field map material.

    Attributes:
        permittivity (float): relative permittivity.
        resistivity (float): resistivity; zero marks a conductor.
        drift_medium (bool): whether charges drift in this material.
        medium (Any): the associated medium object, if any. Not owned.
    """

    permittivity: float = 1.0
    resistivity: float = np.inf
    drift_medium: bool = False
    medium: Any = None

    @property
    def conductor(self) -> bool:
        return self.resistivity == 0


class Mesh:
    """
    An unstructured mesh: node positions, elements and materials. Elements must all
    be of the same dimension; 2D meshes use the x and y columns of the node array.

    The mesh is read-only once `prepare()` has run. `prepare()` caches, per element,
    the node positions, a bounding box that contains the (possibly curved) element,
    a degeneracy flag, the orientation (sign of the Jacobian determinant at the
    centroid) and, for linear simplices, the affine weights used by the
    local coordinate solver. `reset()` drops these caches.

    Quadrangles with coinciding corners 2 and 3 are handled as triangles, see
    `Element.interpolation_family`.
    """

    def __init__(
        self,
        nodes: ArrayLike,
        elements: list[Element],
        materials: list[Material] | None = None,
    ):
        nodes = np.asarray(nodes, dtype=np.float64)
        if nodes.ndim != 2 or nodes.shape[1] not in (2, 3):
            raise MeshIntegrityError(
                f"Node positions must have shape (n, 2) or (n, 3), got {nodes.shape}."
            )
        if nodes.shape[1] == 2:
            nodes = np.hstack([nodes, np.zeros((nodes.shape[0], 1))])
        self.nodes = nodes
        self.elements = list(elements)
        self.materials = list(materials) if materials is not None else [Material()]

        dimensions = {element.family.dimension for element in self.elements}
        if len(dimensions) > 1:
            raise MeshIntegrityError("Cannot mix 2D and 3D elements in one mesh.")
        self.dimension = dimensions.pop() if dimensions else 3

        n_nodes = self.number_of_nodes
        for i, element in enumerate(self.elements):
            if any(node < 0 or node >= n_nodes for node in element.nodes):
                raise MeshIntegrityError(
                    f"Element {i} refers to a node outside of [0, {n_nodes})."
                )
            if not 0 <= element.material < len(self.materials):
                raise MeshIntegrityError(
                    f"Element {i} refers to unknown material {element.material}."
                )

        self._positions: list[NDArray] | None = None
        self.bounding_box_min: NDArray | None = None
        self.bounding_box_max: NDArray | None = None
        self.degenerate: NDArray | None = None
        self.orientation: NDArray | None = None
        self.affine_weights: dict[int, NDArray] = {}

    @property
    def number_of_nodes(self) -> int:
        return self.nodes.shape[0]

    @property
    def number_of_elements(self) -> int:
        return len(self.elements)

    @property
    def prepared(self) -> bool:
        return self._positions is not None

    def prepare(self) -> None:
        """Computes the per-element caches. Does nothing if they already exist."""
        if self.prepared:
            return
        dim = self.dimension
        n = self.number_of_elements
        positions = []
        bb_min = np.empty((n, dim))
        bb_max = np.empty((n, dim))
        degenerate = np.zeros(n, dtype=bool)
        orientation = np.zeros(n)
        weights = {}

        for i, element in enumerate(self.elements):
            family = element.interpolation_family
            pos = self.nodes[list(element.interpolation_nodes), :dim]
            positions.append(pos)

            hull = _control_points(family, pos)
            bb_min[i] = hull.min(axis=0)
            bb_max[i] = hull.max(axis=0)

            degenerate[i] = (
                _corner_measure(family, pos)
                <= DEGENERACY_TOLERANCE * _corner_size(family, pos) ** dim
            )
            if not degenerate[i]:
                _, det = jacobian(family, family.natural_centroid(), pos)
                orientation[i] = np.sign(det)
            if family.solve == "affine" and not degenerate[i]:
                weights[i] = affine_weights(pos)

        self._positions = positions
        self.bounding_box_min = bb_min
        self.bounding_box_max = bb_max
        self.degenerate = degenerate
        self.orientation = orientation
        self.affine_weights = weights
        logger.debug(
            "Prepared %d elements (%d degenerate).",
            n,
            int(np.count_nonzero(degenerate)),
        )

    def reset(self) -> None:
        """Drops the caches computed by `prepare()`."""
        self._positions = None
        self.bounding_box_min = None
        self.bounding_box_max = None
        self.degenerate = None
        self.orientation = None
        self.affine_weights = {}

    def element_positions(self, i: int) -> NDArray:
        """The node positions of element `i`, of shape `(n_nodes, dimension)`."""
        if self._positions is None:
            nodes = list(self.element_nodes(i))
            return self.nodes[nodes, : self.dimension]
        return self._positions[i]

    def element_family(self, i: int) -> ElementFamily:
        return self.elements[i].interpolation_family

    def element_nodes(self, i: int) -> tuple[int, ...]:
        """The nodes of element `i` in the order of `element_family(i)`."""
        return self.elements[i].interpolation_nodes

    def get_element(self, i: int) -> Element:
        return self.elements[i]

    def get_node(self, i: int) -> NDArray:
        return self.nodes[i].copy()

    def element_volume(self, i: int) -> float:
        """The area (2D) or volume (3D) of element `i`."""
        return element_measure(self.element_family(i), self.element_positions(i))

    def aspect_ratio(self, i: int) -> tuple[float, float]:
        """The smallest and largest distance between two corners of element `i`."""
        corners = self.element_positions(i)[: self.element_family(i).corners]
        distances = [
            float(np.linalg.norm(a - b))
            for a, b in itertools.combinations(corners, 2)
        ]
        return min(distances), max(distances)

    # Materials

    def permittivity(self, imat: int) -> float:
        return self.materials[imat].permittivity

    def conductivity(self, imat: int) -> float:
        resistivity = self.materials[imat].resistivity
        return np.inf if resistivity == 0 else 1.0 / resistivity

    def drift_medium(self, imat: int) -> None:
        """Flags a material as a drift medium."""
        self.materials[imat].drift_medium = True

    def not_drift_medium(self, imat: int) -> None:
        self.materials[imat].drift_medium = False

    def set_medium(self, imat: int, medium: Any) -> None:
        self.materials[imat].medium = medium

    def get_medium(self, imat: int) -> Any:
        return self.materials[imat].medium

    def set_gas(self, medium: Any) -> None:
        """Associates every material with unit relative permittivity with `medium`
        and flags it as a drift medium."""
        for material in self.materials:
            if np.isclose(material.permittivity, 1.0):
                material.medium = medium
                material.drift_medium = True

    def set_default_drift_medium(self) -> bool:
        """
        Flags the materials with the lowest permittivity as drift media, and all
        others as non-drift media. Returns False (changing nothing) if there are no
        materials or a permittivity is not positive.
        """
        if not self.materials:
            return False
        permittivities = np.array([m.permittivity for m in self.materials])
        if np.any(permittivities <= 0):
            logger.warning("Found a material with non-positive permittivity.")
            return False
        lowest = permittivities.min()
        for material, eps in zip(self.materials, permittivities):
            material.drift_medium = bool(np.isclose(eps, lowest))
        return True


def _control_points(family: ElementFamily, positions: NDArray) -> NDArray:
    """Corner nodes plus the Bezier control points of the quadratic edges. Their
    convex hull contains the element."""
    points = [positions[: family.corners]]
    for mid, a, b in family.edges:
        points.append(
            (2 * positions[mid] - 0.5 * (positions[a] + positions[b]))[np.newaxis]
        )
    return np.vstack(points)


def _corner_measure(family: ElementFamily, positions: NDArray) -> float:
    linear = ELEMENT_FAMILIES[family.linear_type] if family.linear_type else family
    corners = positions[: family.corners]
    _, det = jacobian(linear, linear.natural_centroid(), corners)
    return abs(det) * linear.reference_measure


def _corner_size(family: ElementFamily, positions: NDArray) -> float:
    return float(np.max(np.ptp(positions[: family.corners], axis=0)))
