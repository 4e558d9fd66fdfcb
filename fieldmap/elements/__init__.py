"""
The `fieldmap.elements` package contains the isoparametric shape functions of the
supported element families and the solver for local (natural) coordinates.
"""

from .element import (
    DegenerateElementException,
    ElementFamily,
    ElementType,
    boundary_margin,
    element_measure,
    in_natural_domain,
    interpolate,
    jacobian,
    natural_to_physical,
    physical_gradient,
)
from .simplex import TETRAHEDRON4, TETRAHEDRON10, TRIANGLE3, TRIANGLE6
from .tensor import HEXAHEDRON8, QUADRANGLE4, QUADRANGLE8

ELEMENT_FAMILIES: dict[ElementType, ElementFamily] = {
    family.type: family
    for family in (
        TRIANGLE3,
        TRIANGLE6,
        QUADRANGLE4,
        QUADRANGLE8,
        TETRAHEDRON4,
        TETRAHEDRON10,
        HEXAHEDRON8,
    )
}

__all__ = [
    "ELEMENT_FAMILIES",
    "DegenerateElementException",
    "ElementFamily",
    "ElementType",
    "boundary_margin",
    "element_measure",
    "in_natural_domain",
    "interpolate",
    "jacobian",
    "natural_to_physical",
    "physical_gradient",
]


def __dir__() -> list[str]:
    return __all__
