"""
Pure transforms between global coordinates and the coordinates of the sampled
field map cell. `map_coordinates` folds a point into the cell; `unmap_field` turns
a field evaluated in the cell back into the global frame.
"""

import dataclasses
from typing import Literal

import numpy as np
from numpy.typing import ArrayLike, NDArray

__all__ = ["AxisMode", "MappedPoint", "Periodicity", "map_coordinates", "unmap_field"]

AxisMode = Literal["none", "periodic", "mirror", "axial", "rotation"]

# the plane rotated by axial periodicity around each axis
_ROTATION_PLANES = ((1, 2), (2, 0), (0, 1))
# rotation symmetry around each axis: the radial coordinate of the r-z map and the
# coordinate folded onto it
_RADIAL_AXES = ((1, 2), (0, 2), (0, 1))


def __dir__() -> list[str]:
    return __all__


@dataclasses.dataclass(kw_only=True, frozen=True)
class Periodicity:
    """
    Symmetries of a field map, per axis:

    - `"periodic"`: the field repeats with period `map_max - map_min`.
    - `"mirror"`: like `"periodic"`, but every other cell is mirrored.
    - `"axial"`: the field repeats under rotations around the axis by
      `angle_max - angle_min` (radians); `[angle_min, angle_max]` is the sector
      covered by the mesh.
    - `"rotation"`: the field is symmetric under any rotation around the axis. The
      mesh is an r-z map: a point is mapped to its distance from the axis along
      the radial coordinate (y for the x axis, x otherwise) and its coordinate
      along the axis.
    """

    modes: tuple[AxisMode, AxisMode, AxisMode] = ("none", "none", "none")
    map_min: tuple[float, float, float] = (0.0, 0.0, 0.0)
    map_max: tuple[float, float, float] = (0.0, 0.0, 0.0)
    angle_min: tuple[float, float, float] = (0.0, 0.0, 0.0)
    angle_max: tuple[float, float, float] = (0.0, 0.0, 0.0)

    def __post_init__(self):
        for axis, mode in enumerate(self.modes):
            if mode in ("periodic", "mirror") and not (
                self.map_max[axis] > self.map_min[axis]
            ):
                raise ValueError(f"Axis {axis} has an empty {mode} cell.")
            if mode == "axial" and not (self.angle_max[axis] > self.angle_min[axis]):
                raise ValueError(f"Axis {axis} has an empty axial sector.")


@dataclasses.dataclass(frozen=True)
class MappedPoint:
    """A point folded into the field map cell.

    Attributes:
        position (NDArray): the position in the cell.
        mirrored (NDArray): per axis, whether the point was reflected.
        rotation (NDArray): per axis, the angle the point was rotated by (the
            point was rotated by `-rotation`).
        azimuth (NDArray): per axis with rotation symmetry, the azimuth of the point
            around that axis.
    """

    position: NDArray
    mirrored: NDArray
    rotation: NDArray
    azimuth: NDArray = dataclasses.field(default_factory=lambda: np.zeros(3))


def map_coordinates(
    point: ArrayLike, periodicity: Periodicity | None = None
) -> MappedPoint:
    position = np.array(point, dtype=np.float64)
    mirrored = np.zeros(3, dtype=bool)
    rotation = np.zeros(3)
    azimuth = np.zeros(3)
    if periodicity is None:
        return MappedPoint(position, mirrored, rotation, azimuth)

    for axis, mode in enumerate(periodicity.modes):
        lo, hi = periodicity.map_min[axis], periodicity.map_max[axis]
        if mode == "periodic":
            position[axis] = lo + np.mod(position[axis] - lo, hi - lo)
        elif mode == "mirror":
            cell = hi - lo
            n_cells = np.floor((position[axis] - lo) / cell)
            folded = lo + np.mod(position[axis] - lo, cell)
            if int(n_cells) % 2:
                folded = lo + hi - folded
                mirrored[axis] = True
            position[axis] = folded
        elif mode == "axial":
            j, k = _ROTATION_PLANES[axis]
            r = np.hypot(position[j], position[k])
            if r == 0:
                continue
            amin, amax = periodicity.angle_min[axis], periodicity.angle_max[axis]
            span = amax - amin
            phi = np.arctan2(position[k], position[j])
            angle = span * np.floor(0.5 + (phi - 0.5 * (amin + amax)) / span)
            if phi - angle < amin:
                angle -= span
            if phi - angle > amax:
                angle += span
            phi -= angle
            position[j] = r * np.cos(phi)
            position[k] = r * np.sin(phi)
            rotation[axis] = angle
        elif mode == "rotation":
            radial, folded = _RADIAL_AXES[axis]
            azimuth[axis] = np.arctan2(position[folded], position[radial])
            position[radial] = np.hypot(position[radial], position[folded])
            position[folded] = 0.0

    return MappedPoint(position, mirrored, rotation, azimuth)


def unmap_field(field: ArrayLike, mapped: MappedPoint) -> NDArray:
    """Transforms a field vector evaluated at `mapped.position` back to the frame of
    the original point."""
    field = np.array(field, dtype=np.float64)
    field[mapped.mirrored] *= -1
    for axis, angle in enumerate(mapped.rotation):
        if angle == 0:
            continue
        j, k = _ROTATION_PLANES[axis]
        c, s = np.cos(angle), np.sin(angle)
        field[j], field[k] = c * field[j] - s * field[k], s * field[j] + c * field[k]
    for axis, angle in enumerate(mapped.azimuth):
        if angle == 0:
            continue
        radial, folded = _RADIAL_AXES[axis]
        # the field of an r-z map has no azimuthal component
        e_r = field[radial]
        field[radial], field[folded] = e_r * np.cos(angle), e_r * np.sin(angle)
    return field
