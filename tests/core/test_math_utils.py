"""Tests for math_utils module."""

import numpy as np
import pytest

from stretchlink.core.math_utils import (
    vec3, as_vec3, mat4_identity, mat4_compose, mat4_from_quaternion, mat4_inverse,
    quat_identity, quat_from_euler, quat_from_axis_angle, quat_from_unit_vectors,
    quat_rotate_vec3, normalize, distance, transform_point, inverse_transform_point,
)


def test_vec3():
    v = vec3(1, 2, 3)
    assert v.shape == (3,)
    np.testing.assert_array_equal(v, [1, 2, 3])


def test_as_vec3_copies():
    src = [1.0, 2.0, 3.0]
    v = as_vec3(src)
    v[0] = 9.0
    assert src[0] == 1.0
    assert v.dtype == np.float64


def test_as_vec3_rejects_wrong_shape():
    with pytest.raises(ValueError):
        as_vec3([1.0, 2.0])


def test_mat4_compose_identity_rotation():
    m = mat4_compose(vec3(1, 2, 3), quat_identity(), vec3(2, 2, 2))
    p = transform_point(m, vec3(1, 0, 0))
    np.testing.assert_array_almost_equal(p, [3, 2, 3])


def test_mat4_compose_scales_before_rotating():
    # Stretch local X by 3, then turn X onto Y
    q = quat_from_axis_angle(vec3(0, 0, 1), np.pi / 2)
    m = mat4_compose(vec3(), q, vec3(3, 1, 1))
    p = transform_point(m, vec3(1, 0, 0))
    np.testing.assert_array_almost_equal(p, [0, 3, 0], decimal=10)


def test_mat4_inverse():
    m = mat4_compose(vec3(5, 10, 15), quat_from_euler(0.3, 0.2, 0.1), vec3(1, 2, 3))
    np.testing.assert_array_almost_equal(m @ mat4_inverse(m), mat4_identity(), decimal=10)


def test_quat_from_axis_angle():
    q = quat_from_axis_angle(vec3(0, 1, 0), np.pi / 2)
    v = quat_rotate_vec3(q, vec3(0, 0, 1))
    np.testing.assert_array_almost_equal(v, [1, 0, 0], decimal=10)


def test_mat4_from_quaternion_matches_rotate():
    q = quat_from_euler(0.3, 0.5, 0.7, "XYZ")
    v = vec3(1, 2, 3)
    np.testing.assert_array_almost_equal(
        quat_rotate_vec3(q, v), transform_point(mat4_from_quaternion(q), v), decimal=10,
    )


def test_quat_from_euler_bad_order():
    with pytest.raises(ValueError):
        quat_from_euler(0, 0, 0, "QRS")


@pytest.mark.parametrize("target", [
    (1, 0, 0), (0, 1, 0), (0, 0, 1), (0, 0, -1), (1, -2, 0.5),
])
def test_quat_from_unit_vectors(target):
    to = normalize(vec3(*target))
    q = quat_from_unit_vectors(vec3(0, 0, 1), to)
    np.testing.assert_array_almost_equal(quat_rotate_vec3(q, vec3(0, 0, 1)), to, decimal=10)
    assert np.linalg.norm(q) == pytest.approx(1.0)


def test_normalize_zero():
    np.testing.assert_array_equal(normalize(vec3()), [0, 0, 0])


def test_distance():
    assert distance(vec3(0, 0, 0), vec3(3, 4, 0)) == pytest.approx(5.0)


def test_inverse_transform_point_roundtrip():
    m = mat4_compose(vec3(-2, 7, 1), quat_from_euler(1.1, -0.4, 2.0), vec3(0.5, 3, 1.5))
    p = vec3(4, -1, 9)
    np.testing.assert_allclose(transform_point(m, inverse_transform_point(m, p)), p, atol=1e-10)
