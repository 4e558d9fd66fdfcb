import bisect
import dataclasses

import numpy as np
from numpy.typing import ArrayLike, NDArray


class PotentialShapeError(Exception):
    """Raised when a potential array does not have one value per node."""

    def __init__(self, name: str, expected: tuple[int, ...], shape: tuple[int, ...]):
        super().__init__(
            f"Cannot use potential '{name}' of shape {shape};"
            f" expected shape {expected}."
        )
        self.name = name
        self.expected = expected
        self.shape = shape


@dataclasses.dataclass(kw_only=True)
class Potentials:
    """
    Nodal potentials of a field map: the electrostatic solution (`main`), one
    weighting potential per electrode, and delayed weighting potentials sampled at
    `times`. Every array has one value per node; delayed weighting potentials have
    shape `(len(times), n_nodes)`.
    """

    main: NDArray
    weighting: dict[str, NDArray] = dataclasses.field(default_factory=dict)
    delayed_weighting: dict[str, NDArray] = dataclasses.field(default_factory=dict)
    times: NDArray = dataclasses.field(default_factory=lambda: np.empty(0))

    def __post_init__(self):
        self.main = np.asarray(self.main, dtype=np.float64)
        if self.main.ndim != 1:
            raise PotentialShapeError("main", (-1,), self.main.shape)
        self.times = np.asarray(self.times, dtype=np.float64)
        if self.times.ndim != 1 or np.any(np.diff(self.times) <= 0):
            raise ValueError("Delayed weighting times must be strictly increasing.")
        weighting, self.weighting = self.weighting, {}
        for label, values in weighting.items():
            self.add_weighting_potential(label, values)
        delayed, self.delayed_weighting = self.delayed_weighting, {}
        for label, values in delayed.items():
            self.add_delayed_weighting_potential(label, values)

    @property
    def number_of_nodes(self) -> int:
        return self.main.shape[0]

    def add_weighting_potential(self, label: str, values: ArrayLike) -> None:
        values = np.asarray(values, dtype=np.float64)
        if values.shape != (self.number_of_nodes,):
            raise PotentialShapeError(label, (self.number_of_nodes,), values.shape)
        self.weighting[label] = values

    def add_delayed_weighting_potential(self, label: str, values: ArrayLike) -> None:
        values = np.asarray(values, dtype=np.float64)
        expected = (len(self.times), self.number_of_nodes)
        if values.shape != expected:
            raise PotentialShapeError(label, expected, values.shape)
        self.delayed_weighting[label] = values

    def get(self, field_name: str | None = None) -> NDArray | None:
        """The main potential for `None`, the weighting potential of electrode
        `field_name` otherwise; None if there is no such electrode."""
        if field_name is None:
            return self.main
        return self.weighting.get(field_name)


def time_interpolation(times: ArrayLike, t: float) -> tuple[int, int, float, float]:
    """
    Finds the samples bracketing `t` and the linear blend weights.

    Args:
        times (ArrayLike): strictly increasing sample times.
        t (float): the requested time. Times outside the sampled range are clamped
            to the nearest end.

    Raises:
        ValueError: if `times` is empty.

    Returns:
        tuple[int, int, float, float]: `(i0, i1, f0, f1)` such that the value at
            `t` is `f0 * v[i0] + f1 * v[i1]`, with `f0 + f1 == 1`.
    """
    times = np.asarray(times, dtype=np.float64)
    if len(times) == 0:
        raise ValueError("Cannot interpolate without sample times.")
    last = len(times) - 1
    if t <= times[0]:
        return 0, 0, 1.0, 0.0
    if t >= times[last]:
        return last, last, 1.0, 0.0
    i1 = bisect.bisect_right(times, t)
    i0 = i1 - 1
    f1 = float((t - times[i0]) / (times[i1] - times[i0]))
    return i0, i1, 1.0 - f1, f1
