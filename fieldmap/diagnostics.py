"""
Diagnostic events returned by queries, and a caller-side rate limiter that turns
them into warnings. The core keeps no warning state of its own.
"""

import collections
import collections.abc as colltypes
import dataclasses
import logging
import warnings
from typing import Literal

__all__ = ["Diagnostic", "DiagnosticKind", "FieldMapWarning", "WarningRateLimiter"]

logger = logging.getLogger(__name__)

DiagnosticKind = Literal["convergence", "ambiguous", "degenerate"]


def __dir__() -> list[str]:
    return __all__


class FieldMapWarning(UserWarning):
    pass


@dataclasses.dataclass(frozen=True)
class Diagnostic:
    """An event observed while answering a query.

    Attributes:
        kind (DiagnosticKind): `"convergence"` if the local coordinates did not
            converge, `"ambiguous"` if a point lies inside more than one element,
            `"degenerate"` if a singular element was met.
        message (str): a human-readable description.
        element (int | None): the element concerned.
        point (tuple[float, ...] | None): the query point.
    """

    kind: DiagnosticKind
    message: str
    element: int | None = None
    point: tuple[float, ...] | None = None


class WarningRateLimiter:
    """
    Reports the first `limit` diagnostics of each kind with `warnings.warn`, and
    counts the rest.

    Args:
        limit (int, optional): how many events of each kind are reported.
            Defaults to 1.
    """

    def __init__(self, limit: int = 1):
        self.limit = limit
        self.counts: collections.Counter[str] = collections.Counter()

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def emit(self, diagnostics: colltypes.Iterable[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            self.counts[diagnostic.kind] += 1
            count = self.counts[diagnostic.kind]
            if count <= self.limit:
                warnings.warn(diagnostic.message, FieldMapWarning, stacklevel=2)
            elif count == self.limit + 1:
                logger.info("Further '%s' diagnostics are suppressed.", diagnostic.kind)

    def reset(self) -> None:
        self.counts.clear()
