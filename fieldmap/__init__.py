"""
`fieldmap` locates points in unstructured finite-element meshes and interpolates
potentials and fields from nodal solutions.
"""

from .component import FieldMap, FieldResult, FieldStatus
from .config import FieldMapOptions
from .diagnostics import Diagnostic, FieldMapWarning, WarningRateLimiter
from .fields import PotentialShapeError, Potentials, time_interpolation
from .locator import ElementLocator, Location
from .logging_config import setup_logging
from .mesh import Element, Material, Mesh, MeshIntegrityError
from .transforms import Periodicity

__all__ = [
    "FieldMap",
    "FieldResult",
    "FieldStatus",
    "FieldMapOptions",
    "Diagnostic",
    "FieldMapWarning",
    "WarningRateLimiter",
    "PotentialShapeError",
    "Potentials",
    "time_interpolation",
    "ElementLocator",
    "Location",
    "setup_logging",
    "Element",
    "Material",
    "Mesh",
    "MeshIntegrityError",
    "Periodicity",
]
