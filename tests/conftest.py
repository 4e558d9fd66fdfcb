import itertools

import numpy as np
import pytest

from fieldmap.elements import ELEMENT_FAMILIES
from fieldmap.mesh import Element, Material, Mesh

_LINEAR_TYPE = {
    "triangle6": "triangle3",
    "quadrangle8": "quadrangle4",
    "tetrahedron10": "tetrahedron4",
}


def warp(nodes):
    """A smooth perturbation of the unit square/cube that keeps its boundary in
    place, so that warped meshes still cover exactly [0, 1]^dim."""
    nodes = np.array(nodes, dtype=np.float64)
    dim = nodes.shape[1]
    out = nodes.copy()
    for k in range(dim):
        out[:, k] += (
            0.04 * np.sin(np.pi * nodes[:, k]) * np.sin(np.pi * nodes[:, (k + 1) % dim])
        )
    return out


def _structured_linear(element_type, n):
    dim = ELEMENT_FAMILIES[element_type].dimension

    def node_id(*ijk):
        return sum(c * (n + 1) ** a for a, c in enumerate(ijk))

    nodes = [
        [c / n for c in reversed(ijk)]
        for ijk in itertools.product(range(n + 1), repeat=dim)
    ]
    elements = []
    for cell in itertools.product(range(n), repeat=dim):
        cell = tuple(reversed(cell))  # i varies fastest

        def v(*offset):
            return node_id(*(c + o for c, o in zip(cell, offset)))

        if element_type == "quadrangle4":
            elements.append((v(0, 0), v(1, 0), v(1, 1), v(0, 1)))
        elif element_type == "triangle3":
            elements.append((v(0, 0), v(1, 0), v(1, 1)))
            elements.append((v(0, 0), v(1, 1), v(0, 1)))
        elif element_type == "hexahedron8":
            elements.append(
                (
                    v(0, 0, 0),
                    v(1, 0, 0),
                    v(1, 1, 0),
                    v(0, 1, 0),
                    v(0, 0, 1),
                    v(1, 0, 1),
                    v(1, 1, 1),
                    v(0, 1, 1),
                )
            )
        elif element_type == "tetrahedron4":
            for perm in itertools.permutations(range(3)):
                offset = [0, 0, 0]
                tet = [v(*offset)]
                for axis in perm:
                    offset[axis] = 1
                    tet.append(v(*offset))
                elements.append(tuple(tet))
    return np.array(nodes, dtype=np.float64), elements


def add_midside_nodes(nodes, elements, element_type):
    """Appends one node per edge listed by the family, shared between elements."""
    family = ELEMENT_FAMILIES[element_type]
    nodes = [np.asarray(p, dtype=np.float64) for p in nodes]
    index = {}
    out = []
    for element in elements:
        extra = []
        for _, a, b in family.edges:
            key = tuple(sorted((element[a], element[b])))
            if key not in index:
                index[key] = len(nodes)
                nodes.append(0.5 * (nodes[key[0]] + nodes[key[1]]))
            extra.append(index[key])
        out.append(tuple(element) + tuple(extra))
    return np.array(nodes), out


def structured_mesh(element_type, n=2, warped=False, materials=None, material_of=None):
    """A mesh of the unit square (2D types) or unit cube (3D types) with `n` cells
    per axis. `material_of(i)` gives the material index of element `i`."""
    linear_type = _LINEAR_TYPE.get(element_type, element_type)
    nodes, elements = _structured_linear(linear_type, n)
    if linear_type != element_type:
        nodes, elements = add_midside_nodes(nodes, elements, element_type)
    if warped:
        nodes = warp(nodes)
    if materials is None:
        materials = [Material(permittivity=1.0, drift_medium=True, medium="gas")]
    return Mesh(
        nodes,
        [
            Element(
                type=element_type,
                nodes=element,
                material=0 if material_of is None else material_of(i),
            )
            for i, element in enumerate(elements)
        ],
        materials,
    )


@pytest.fixture(scope="session")
def make_mesh():
    return structured_mesh


@pytest.fixture(params=list(ELEMENT_FAMILIES.keys()))
def element_type(request):
    return request.param


def interior_points(dim, count=20, seed=0, margin=0.05):
    rng = np.random.default_rng(seed)
    points = np.zeros((count, 3))
    points[:, :dim] = rng.uniform(margin, 1 - margin, size=(count, dim))
    return points


@pytest.fixture(scope="session")
def make_interior_points():
    return interior_points
