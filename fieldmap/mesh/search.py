"""
Candidate generation for the element search. Both implementations return the
indices (ascending) of the elements whose padded bounding box contains a point;
`BoundingBoxTree` avoids testing every box by querying a KD-tree over the box
centers.
"""

import abc
import logging
import typing

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.spatial import cKDTree

from fieldmap.config import BOUNDING_BOX_MARGIN

from .fundamentals import Mesh

__all__ = ["CandidateSearch", "ExhaustiveSearch", "BoundingBoxTree", "padded_boxes"]

logger = logging.getLogger(__name__)


def __dir__() -> list[str]:
    return __all__


def padded_boxes(
    mesh: Mesh, margin: float = BOUNDING_BOX_MARGIN
) -> tuple[NDArray, NDArray]:
    """The bounding boxes of a prepared mesh, each padded by `margin` times its
    largest extent."""
    if not mesh.prepared:
        mesh.prepare()
    lo, hi = mesh.bounding_box_min, mesh.bounding_box_max
    pad = margin * np.max(hi - lo, axis=1, keepdims=True)
    return lo - pad, hi + pad


class CandidateSearch(abc.ABC):
    """Finds the elements whose bounding box contains a point."""

    def __init__(self, bounding_box_min: NDArray, bounding_box_max: NDArray):
        self.bounding_box_min = np.asarray(bounding_box_min, dtype=np.float64)
        self.bounding_box_max = np.asarray(bounding_box_max, dtype=np.float64)

    @property
    def dimension(self) -> int:
        return self.bounding_box_min.shape[1]

    def _contains(self, indices: NDArray, point: NDArray) -> NDArray:
        lo = self.bounding_box_min[indices]
        hi = self.bounding_box_max[indices]
        return np.all((lo <= point) & (point <= hi), axis=1)

    @abc.abstractmethod
    def candidates(self, point: ArrayLike) -> NDArray:
        """
        Args:
            point (ArrayLike): the point, of shape `(dimension,)`.

        Returns:
            NDArray: indices of the elements whose bounding box contains `point`,
                sorted ascending.
        """
        pass


class ExhaustiveSearch(CandidateSearch):
    """Tests the bounding box of every element."""

    @typing.override
    def candidates(self, point: ArrayLike) -> NDArray:
        point = np.asarray(point, dtype=np.float64)[: self.dimension]
        return np.flatnonzero(
            np.all(
                (self.bounding_box_min <= point) & (point <= self.bounding_box_max),
                axis=1,
            )
        )


class BoundingBoxTree(CandidateSearch):
    """
    A KD-tree over the bounding box centers. A box containing the point has its
    center within its half diagonal of the point, so a ball query with the largest
    half diagonal returns a superset of the candidates, which is then filtered by
    the exact box test.
    """

    def __init__(self, bounding_box_min: NDArray, bounding_box_max: NDArray):
        super().__init__(bounding_box_min, bounding_box_max)
        centers = 0.5 * (self.bounding_box_min + self.bounding_box_max)
        half_diagonals = 0.5 * np.linalg.norm(
            self.bounding_box_max - self.bounding_box_min, axis=1
        )
        self.radius = float(half_diagonals.max()) if len(half_diagonals) else 0.0
        self.tree = cKDTree(centers) if len(centers) else None
        logger.debug(
            "Built bounding box tree over %d elements (search radius %g).",
            len(centers),
            self.radius,
        )

    @typing.override
    def candidates(self, point: ArrayLike) -> NDArray:
        if self.tree is None:
            return np.empty(0, dtype=np.int64)
        point = np.asarray(point, dtype=np.float64)[: self.dimension]
        # the ball is slightly enlarged so that round-off never drops a box
        indices = np.asarray(
            self.tree.query_ball_point(point, r=self.radius * (1 + 1e-12) + 1e-300),
            dtype=np.int64,
        )
        indices.sort()
        return indices[self._contains(indices, point)]
