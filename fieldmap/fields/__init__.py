"""
The `fieldmap.fields` package contains the nodal potential arrays of a field map.
"""

from .potentials import PotentialShapeError, Potentials, time_interpolation

__all__ = ["PotentialShapeError", "Potentials", "time_interpolation"]
