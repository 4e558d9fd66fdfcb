"""
The `fieldmap.mesh` package contains the mesh container and the candidate searches
used to find the element that contains a point.
"""

from .fundamentals import Element, Material, Mesh, MeshIntegrityError
from .search import BoundingBoxTree, CandidateSearch, ExhaustiveSearch, padded_boxes

__all__ = [
    "Element",
    "Material",
    "Mesh",
    "MeshIntegrityError",
    "CandidateSearch",
    "ExhaustiveSearch",
    "BoundingBoxTree",
    "padded_boxes",
]
