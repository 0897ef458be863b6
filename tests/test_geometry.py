import pytest

from raysim import *
from raysim.geometry.vec3 import Vec3
from raysim.geometry.ray3 import Ray3
from raysim.geometry.geometric_object import Cylinder, Sphere
from raysim.geometry.geometric_object_model import GeometricObjectModel


def test_vec3_arithmetic():
    a = Vec3(1.0, 2.0, 3.0)
    b = Vec3(4.0, -1.0, 0.5)

    assert a + b == Vec3(5.0, 1.0, 3.5)
    assert a - b == Vec3(-3.0, 3.0, 2.5)
    assert 2*a == Vec3(2.0, 4.0, 6.0)
    assert a/2 == Vec3(0.5, 1.0, 1.5)
    assert -a == Vec3(-1.0, -2.0, -3.0)
    assert a.dot(b) == pytest.approx(3.5)
    assert Vec3(1, 0, 0).cross(Vec3(0, 1, 0)) == Vec3(0, 0, 1)
    assert Vec3(3, 4, 0).magnitude() == pytest.approx(5.0)


def test_vec3_normalize_returns_copy():
    v = Vec3(0.0, 3.0, 4.0)
    n = v.normalize()

    assert n.magnitude() == pytest.approx(1.0)
    assert v == Vec3(0.0, 3.0, 4.0)
    assert Vec3().normalize() == Vec3()


def test_ray_point_and_length():
    ray = Ray3(Vec3(1.0, 0.0, 0.0), Vec3(0.0, 6.0, 8.0))

    assert ray.get_length() == pytest.approx(10.0)
    assert ray.get_point(0.5) == Vec3(1.0, 3.0, 4.0)


def test_cylinder_diameter_path_length():
    cyl = Cylinder(Vec3(), 10.0, 20.0)
    ray = Ray3(Vec3(-40.0, 0.0, 0.0), Vec3(80.0, 0.0, 0.0))

    assert cyl.ray_path_length(ray) == pytest.approx(20.0)


def test_cylinder_off_center_and_miss():
    cyl = Cylinder(Vec3(5.0, 5.0, 0.0), 2.0, 1.0)

    through = Ray3(Vec3(-40.0, 5.0, 3.0), Vec3(80.0, 0.0, 0.0))
    assert cyl.ray_path_length(through) == pytest.approx(4.0)

    miss = Ray3(Vec3(-40.0, 10.0, 0.0), Vec3(80.0, 0.0, 0.0))
    assert cyl.ray_path_length(miss) == 0.0


def test_cylinder_origin_inside_returns_exit_distance():
    cyl = Cylinder(Vec3(), 10.0, 20.0)
    ray = Ray3(Vec3(), Vec3(40.0, 0.0, 0.0))

    assert cyl.ray_path_length(ray) == pytest.approx(10.0)


def test_cylinder_ray_along_axis_is_zero():
    cyl = Cylinder(Vec3(), 10.0, 20.0)
    ray = Ray3(Vec3(0.0, 0.0, -40.0), Vec3(0.0, 0.0, 80.0))

    assert cyl.ray_path_length(ray) == 0.0


def test_sphere_chord():
    sph = Sphere(Vec3(0.0, 0.0, 1.0), 5.0)
    ray = Ray3(Vec3(-20.0, 0.0, 4.0), Vec3(40.0, 0.0, 0.0))

    # chord at distance 3 from the center
    assert sph.ray_path_length(ray) == pytest.approx(8.0)


def test_vectorized_path_lengths_match_single_rays():
    cyl = Cylinder(Vec3(1.0, -2.0, 0.0), 7.5, 10.0)

    origins = array([[-40.0, 0.0, 0.0], [40.0, 3.0, 1.0], [0.0, -40.0, 2.0]])
    directions = array([[80.0, 1.0, 0.0], [-80.0, -5.0, 0.0],
                        [2.0, 80.0, 0.0]])

    lengths = cyl.ray_path_lengths(origins, directions)

    for n in range(3):
        ray = Ray3(Vec3(*origins[n]), Vec3(*directions[n]))
        assert lengths[n] == pytest.approx(cyl.ray_path_length(ray))


def build_nested_model():
    model = GeometricObjectModel()
    model.add_geometric_object('World', Cylinder(Vec3(), 40.0, 40.0), 'None')
    model.add_geometric_object('Body', Cylinder(Vec3(), 15.0, 20.0), 'World')
    model.add_geometric_object('Left', Cylinder(Vec3(-5.0, 0, 0), 2.0, 5.0),
                               'Body')
    model.add_geometric_object('Right', Cylinder(Vec3(5.0, 0, 0), 2.0, 5.0),
                               'Body')
    model.add_geometric_object('Core', Cylinder(Vec3(5.0, 0, 0), 1.0, 5.0),
                               'Right')
    return model


def test_make_tree_partitions_objects_by_depth():
    model = build_nested_model()
    levels = model.make_tree()

    assert levels[0] == [model.world_id]
    assert levels == [[0], [1], [2, 3], [4]]

    flat = [n for level in levels for n in level]
    assert sorted(flat) == list(range(len(model.object_name)))


def test_unknown_parent_is_skipped():
    model = build_nested_model()

    assert model.add_geometric_object('Orphan', Cylinder(Vec3(), 1.0, 1.0),
                                      'Nowhere') is False
    assert model.find_object('Orphan') is None


def test_second_world_is_rejected():
    model = build_nested_model()

    assert model.add_geometric_object('Room', Cylinder(Vec3(), 50.0, 50.0),
                                      'None') is False
    assert model.find_object('Room') is None
    assert model.world_id == 0
    assert model.make_tree() == [[0], [1], [2, 3], [4]]


def test_cyclic_parent_chain_raises():
    model = build_nested_model()
    model.object_parent[3] = 4

    with pytest.raises(ValueError):
        model.make_tree()


def test_model_without_world_raises():
    model = GeometricObjectModel()

    with pytest.raises(ValueError):
        model.make_tree()


def test_path_lengths_are_attributed_to_innermost_object():
    model = build_nested_model()
    model.make_tree()

    ray = Ray3(Vec3(-40.0, 0.0, 0.0), Vec3(80.0, 0.0, 0.0))
    lengths = dict(model.calc_ray_path_lengths(ray))

    assert lengths[0] == pytest.approx(80.0 - 30.0)
    assert lengths[1] == pytest.approx(30.0 - 8.0)
    assert lengths[2] == pytest.approx(4.0)
    assert lengths[3] == pytest.approx(4.0 - 2.0)
    assert lengths[4] == pytest.approx(2.0)
    assert sum(list(lengths.values())) == pytest.approx(80.0)


def test_ray_missing_world_returns_sentinel():
    model = build_nested_model()
    model.make_tree()

    ray = Ray3(Vec3(-100.0, 60.0, 0.0), Vec3(200.0, 0.0, 0.0))
    assert model.calc_ray_path_lengths(ray) == [(-1, 0.0)]
