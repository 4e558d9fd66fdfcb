import numpy as np
import pytest

import fieldmap.locator
from fieldmap import ElementLocator, FieldMapOptions
from fieldmap.elements import boundary_margin, natural_to_physical
from fieldmap.elements.local_coordinates import local_coordinates
from fieldmap.mesh import Element, Material, Mesh


@pytest.fixture(params=[True, False], ids=["tree", "exhaustive"])
def use_spatial_index(request):
    return request.param


def test_interior_points_are_found(make_mesh, make_interior_points, element_type):
    mesh = make_mesh(element_type, n=2, warped=True)
    locator = ElementLocator(mesh)
    for point in make_interior_points(mesh.dimension):
        location = locator.locate(point)
        assert location.found, f"{element_type}: {point} not found"
        assert location.converged
        family = mesh.element_family(location.element)
        x = natural_to_physical(
            family, location.coordinates, mesh.element_positions(location.element)
        )
        assert np.allclose(x, point[: mesh.dimension], atol=1e-9)


def test_index_and_exhaustive_agree(make_mesh, make_interior_points, element_type):
    mesh = make_mesh(element_type, n=2, warped=True)
    indexed = ElementLocator(mesh, FieldMapOptions(use_spatial_index=True))
    exhaustive = ElementLocator(mesh, FieldMapOptions(use_spatial_index=False))
    points = np.vstack(
        [make_interior_points(mesh.dimension, count=30, seed=5, margin=0.0), mesh.nodes]
    )
    for point in points:
        a, b = indexed.locate(point), exhaustive.locate(point)
        assert a.element == b.element
        if a.found:
            assert np.allclose(a.coordinates, b.coordinates)


def test_shared_edge_resolves_to_lowest_index(make_mesh, use_spatial_index):
    mesh = make_mesh("triangle3", n=2)
    # (0.25, 0.25) lies on the diagonal shared by elements 0 and 1
    for check in (False, True):
        locator = ElementLocator(
            mesh,
            FieldMapOptions(
                use_spatial_index=use_spatial_index, check_multiple_elements=check
            ),
        )
        for _ in range(3):
            location = locator.locate((0.25, 0.25, 0.0))
            assert location.element == 0
            assert not any(d.kind == "ambiguous" for d in location.diagnostics)

    for i in (0, 1):
        family = mesh.element_family(i)
        solution = local_coordinates(family, mesh.element_positions(i), (0.25, 0.25))
        assert abs(boundary_margin(family, solution.coordinates)) < 1e-10


def test_overlapping_elements_are_reported():
    nodes = ((0.0, 0.0), (1.0, 0.0), (0.0, 1.0))
    mesh = Mesh(
        nodes,
        [
            Element(type="triangle3", nodes=(0, 1, 2)),
            Element(type="triangle3", nodes=(1, 2, 0)),
        ],
    )
    location = ElementLocator(mesh).locate((0.2, 0.2, 0.0))
    assert location.element == 0
    assert location.diagnostics == ()

    checking = ElementLocator(mesh, FieldMapOptions(check_multiple_elements=True))
    location = checking.locate((0.2, 0.2, 0.0))
    assert location.element == 0
    (diagnostic,) = location.diagnostics
    assert diagnostic.kind == "ambiguous"
    assert diagnostic.element == 0


def test_degenerate_elements_are_skipped(use_spatial_index):
    nodes = (
        (0.0, 0.0, 0.0),
        (0.5, 0.5, 0.5),
        (1.0, 0.0, 0.0),
        (0.0, 1.0, 0.0),
        (0.0, 0.0, 1.0),
    )
    mesh = Mesh(
        nodes,
        [
            Element(type="tetrahedron4", nodes=(0, 1, 1, 1)),
            Element(type="tetrahedron4", nodes=(0, 2, 3, 4)),
        ],
    )
    locator = ElementLocator(mesh, FieldMapOptions(use_spatial_index=use_spatial_index))
    assert list(locator.active) == [False, True]
    location = locator.locate((0.3, 0.2, 0.1))
    assert location.element == 1
    assert np.allclose(location.coordinates, (0.4, 0.3, 0.2, 0.1))


def test_outside_point_skips_local_coordinates(
    make_mesh, monkeypatch, use_spatial_index
):
    mesh = make_mesh("hexahedron8", n=2)
    locator = ElementLocator(mesh, FieldMapOptions(use_spatial_index=use_spatial_index))
    calls = []

    def counting(*args, **kwargs):
        calls.append(args)
        return original(*args, **kwargs)

    original = fieldmap.locator.local_coordinates
    monkeypatch.setattr(fieldmap.locator, "local_coordinates", counting)

    location = locator.locate((5.0, 5.0, 5.0))
    assert not location.found
    assert location.coordinates is None
    assert calls == []

    assert locator.locate((0.3, 0.3, 0.3)).found
    assert len(calls) >= 1


def test_collapsed_quadrangle_is_searched_as_a_triangle(use_spatial_index):
    nodes = ((0.0, 0.0), (1.0, 0.0), (0.0, 1.0), (0.5, 0.0), (0.5, 0.5), (0.0, 0.5))
    mesh = Mesh(nodes, [Element(type="quadrangle8", nodes=(0, 1, 2, 2, 3, 4, 2, 5))])
    locator = ElementLocator(mesh, FieldMapOptions(use_spatial_index=use_spatial_index))
    assert list(locator.active) == [True]

    location = locator.locate((0.2, 0.3, 0.0))
    assert location.element == 0
    assert location.diagnostics == ()
    assert np.allclose(location.coordinates, (0.5, 0.2, 0.3))
    assert not locator.locate((0.6, 0.6, 0.0)).found


def folded_quadrangle() -> Mesh:
    # the midside of edge 01 is pulled across the element, so that the Jacobian
    # determinant is negative at the centroid and positive near corners 1 and 2
    nodes = (
        (0.0, 0.0),
        (1.0, 0.0),
        (1.0, 1.0),
        (0.0, 1.0),
        (0.5, 1.3),
        (1.0, 0.5),
        (0.5, 1.0),
        (0.0, 0.5),
    )
    return Mesh(nodes, [Element(type="quadrangle8", nodes=range(8))])


def test_folded_part_of_an_element_is_rejected():
    mesh = folded_quadrangle()
    locator = ElementLocator(mesh)
    assert list(mesh.orientation) == [-1]

    # x = (1 + u) / 2 and y = (1 + v) / 2 + 0.65 (1 - u^2) (1 - v) on this element
    location = locator.locate((0.95, 0.81175, 0.0))
    assert not location.found
    (diagnostic,) = location.diagnostics
    assert diagnostic.kind == "degenerate"
    assert diagnostic.element == 0

    location = locator.locate((0.5, 1.15, 0.0))
    assert location.element == 0
    assert np.allclose(location.coordinates, (0.0, 0.0), atol=1e-9)
    assert location.diagnostics == ()


def test_conductors_are_deleted(make_mesh):
    materials = [
        Material(permittivity=1.0, drift_medium=True),
        Material(permittivity=1.0, resistivity=0.0),
    ]
    mesh = make_mesh(
        "quadrangle4", n=2, materials=materials, material_of=lambda i: int(i == 0)
    )
    point = (0.1, 0.1, 0.0)

    assert not ElementLocator(mesh).locate(point).found
    kept = ElementLocator(mesh, FieldMapOptions(delete_background_elements=False))
    assert kept.locate(point).element == 0
    assert ElementLocator(mesh).locate((0.9, 0.9, 0.0)).element == 3


def test_non_convergence_is_reported():
    nodes = (
        (0.0, 0.0),
        (1.0, 0.0),
        (1.0, 1.0),
        (0.0, 1.0),
        (0.5, 0.0),
        (1.2, 0.6),
        (0.5, 1.0),
        (0.0, 0.5),
    )
    mesh = Mesh(nodes, [Element(type="quadrangle8", nodes=range(8))])
    point = (0.7, 0.3, 0.0)

    capped = ElementLocator(mesh, FieldMapOptions(newton_max_iterations=1))
    location = capped.locate(point)
    assert location.element == 0
    assert not location.converged
    assert [d.kind for d in location.diagnostics] == ["convergence"]

    quiet = ElementLocator(
        mesh, FieldMapOptions(newton_max_iterations=1, convergence_warnings=False)
    )
    location = quiet.locate(point)
    assert not location.converged
    assert location.diagnostics == ()

    assert ElementLocator(mesh).locate(point).converged


def test_invalid_options():
    with pytest.raises(ValueError):
        FieldMapOptions(newton_tolerance=0.0)
    with pytest.raises(ValueError):
        FieldMapOptions(newton_max_iterations=0)
    with pytest.raises(ValueError):
        FieldMapOptions(domain_tolerance=-1.0)
