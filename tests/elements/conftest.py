import numpy as np
import pytest

from fieldmap.elements import ELEMENT_FAMILIES, ElementFamily


def transform_positions(positions, mod, *args):
    dim = positions.shape[-1]
    if mod == "translate":
        if len(args) < dim:
            raise ValueError(f"modifier '{mod}' expects {dim} arguments! (dx,dy,...)")
        vec = np.array(args[:dim])
        positions = positions + vec  # no in-place op, since we want a copy
    elif mod == "rotate":
        if len(args) < 1:
            raise ValueError(f"modifier '{mod}' expects 1 argument! (angle)")
        t = args[0]
        rotmat = np.eye(dim)
        rotmat[:2, :2] = [[np.cos(t), -np.sin(t)], [np.sin(t), np.cos(t)]]
        positions = (rotmat @ np.expand_dims(positions, -1)).squeeze(-1)
    elif mod == "scale":
        if len(args) < dim:
            raise ValueError(f"modifier '{mod}' expects {dim} arguments! (sx,sy,...)")
        vec = np.array(args[:dim])
        positions = positions * vec
    elif mod == "lin_trans":
        if len(args) < 9:
            raise ValueError(f"modifier '{mod}' expects 9 arguments! (3x3 matrix)")
        A = np.array(args[:9], dtype=np.float64).reshape(3, 3)[:dim, :dim]
        positions = (A @ np.expand_dims(positions, -1)).squeeze(-1)
    elif mod == "bend":
        if len(args) < 1:
            raise ValueError(f"modifier '{mod}' expects 1 argument! (curvature)")
        positions = positions.copy()
        positions[..., 0] += args[0] * positions[..., 1] ** 2
    elif mod == "mirror":
        positions = positions.copy()
        positions[..., 0] *= -1
    else:
        raise ValueError(f"'{mod}' not acceptable element modifier!")
    return positions


_PRESET_TRANSFORMS = {
    "ref": lambda x: x,
    "translated": lambda x: transform_positions(x, "translate", 5, -2, 3),
    "rotated": lambda x: transform_positions(x, "rotate", 1),
    "x-scaled": lambda x: transform_positions(x, "scale", 2, 1, 1),
    "mirrored": lambda x: transform_positions(x, "mirror"),
    "bent": lambda x: transform_positions(x, "bend", 0.15),
    "combo": lambda x: transform_positions(
        transform_positions(x, "lin_trans", 2, 1, 0, -1, 1, 0.5, 0, 0.3, 1.5),
        "translate",
        -4,
        2,
        1,
    ),
}

_NATURAL_POINTS = {
    (True, 3): [(0.2, 0.3, 0.5), (1 / 3, 1 / 3, 1 / 3), (0.6, 0.2, 0.2)],
    (True, 4): [
        (0.1, 0.2, 0.3, 0.4),
        (0.25, 0.25, 0.25, 0.25),
        (0.55, 0.15, 0.15, 0.15),
    ],
    (False, 2): [(0.0, 0.0), (0.5, -0.3), (-0.8, 0.7)],
    (False, 3): [(0.0, 0.0, 0.0), (0.5, -0.3, 0.2), (-0.8, 0.7, -0.6)],
}


def reference_positions(family: ElementFamily):
    """Physical positions of the nodes of the reference element: for simplices the
    barycentric coordinates without the first one, otherwise the natural
    coordinates themselves."""
    if family.simplex:
        return family.reference_nodes[:, 1:].copy()
    return family.reference_nodes.copy()


def natural_points(family: ElementFamily):
    return [
        np.array(t)
        for t in _NATURAL_POINTS[(family.simplex, family.number_of_natural_coordinates)]
    ]


@pytest.fixture(scope="module", params=list(ELEMENT_FAMILIES.keys()))
def family(request):
    return ELEMENT_FAMILIES[request.param]


@pytest.fixture(scope="module", params=_PRESET_TRANSFORMS.keys())
def transformation(request):
    name = request.param
    return _PRESET_TRANSFORMS[name]


@pytest.fixture(scope="module")
def transformed_element(family, transformation):
    return family, transformation(reference_positions(family))


@pytest.fixture
def sample_natural_points(family):
    return natural_points(family)


@pytest.fixture
def reference_element(family):
    return reference_positions(family)
