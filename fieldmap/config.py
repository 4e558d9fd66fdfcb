"""
Configuration & Numeric Constants
=================================
This module holds the default numeric tolerances and the `FieldMapOptions`
record that selects the behaviour of the element search.

Exports:
    NEWTON_TOLERANCE (float): Convergence threshold of the Newton iteration,
        relative to the size of the element.
    NEWTON_MAX_ITERATIONS (int): Iteration cap of the Newton iteration.
    DOMAIN_TOLERANCE (float): Outward slack (in natural coordinates) accepted
        when testing whether a point lies inside an element.
    BOUNDING_BOX_MARGIN (float): Padding of element bounding boxes, relative to
        the element extent.
    DEGENERACY_TOLERANCE (float): Elements whose measure is below this fraction of
        `size**dimension` are treated as degenerate.
"""

import dataclasses
from typing import Final

NEWTON_TOLERANCE: Final[float] = 1e-10
NEWTON_MAX_ITERATIONS: Final[int] = 10
DOMAIN_TOLERANCE: Final[float] = 1e-8
BOUNDING_BOX_MARGIN: Final[float] = 1e-8
DEGENERACY_TOLERANCE: Final[float] = 1e-10


@dataclasses.dataclass(kw_only=True, frozen=True)
class FieldMapOptions:
    """Options of a `FieldMap`.

    Attributes:
        use_spatial_index: Query a bounding box tree for candidate elements instead
            of testing every bounding box.
        check_multiple_elements: Scan every candidate and report points that are
            contained in more than one element.
        delete_background_elements: Ignore elements made of a conductor (zero
            resistivity).
        convergence_warnings: Report elements for which the local coordinates did
            not converge.
        fallback_to_exhaustive: Repeat a failed indexed search over all bounding
            boxes.
        newton_tolerance: See `NEWTON_TOLERANCE`.
        newton_max_iterations: See `NEWTON_MAX_ITERATIONS`.
        domain_tolerance: See `DOMAIN_TOLERANCE`.
        bounding_box_margin: See `BOUNDING_BOX_MARGIN`.
    """

    use_spatial_index: bool = True
    check_multiple_elements: bool = False
    delete_background_elements: bool = True
    convergence_warnings: bool = True
    fallback_to_exhaustive: bool = True
    newton_tolerance: float = NEWTON_TOLERANCE
    newton_max_iterations: int = NEWTON_MAX_ITERATIONS
    domain_tolerance: float = DOMAIN_TOLERANCE
    bounding_box_margin: float = BOUNDING_BOX_MARGIN

    def __post_init__(self):
        if self.newton_tolerance <= 0:
            raise ValueError("newton_tolerance must be positive.")
        if self.newton_max_iterations < 1:
            raise ValueError("newton_max_iterations must be at least 1.")
        if self.domain_tolerance < 0 or self.bounding_box_margin < 0:
            raise ValueError(
                "domain_tolerance and bounding_box_margin cannot be negative."
            )
