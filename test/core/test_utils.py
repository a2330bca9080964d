import numpy as np
import pytest

from pyroboik.core.utils import (
    HALF_PI,
    align_quaternion,
    clamp_euler_value,
    diff_euler_distance,
    dof_to_transform,
    euler_to_quaternion,
    euler_to_rotation_matrix,
    get_closest_euler_representation,
    get_redundant_euler_representation,
    get_transform_difference,
    is_redundant_twist,
    pose_to_transform,
    quaternion_angle,
    quaternion_distance,
    quaternion_to_euler,
    to_smallest_euler_value_distance,
    to_smallest_redundant_twist_representation,
)


def test_euler_to_rotation_matrix():
    # Rotating X by 90 degrees about Z gives Y.
    rotation = euler_to_rotation_matrix(0.0, 0.0, HALF_PI)
    np.testing.assert_almost_equal(rotation @ np.array([1.0, 0.0, 0.0]), np.array([0.0, 1.0, 0.0]))

    # Rotations are applied about X, then Y, then Z.
    rotation = euler_to_rotation_matrix(HALF_PI, 0.0, HALF_PI)
    np.testing.assert_almost_equal(rotation @ np.array([0.0, 1.0, 0.0]), np.array([0.0, 0.0, 1.0]))


def test_euler_quaternion_conversion():
    quaternion = euler_to_quaternion(0.0, 0.0, HALF_PI)
    np.testing.assert_almost_equal(
        quaternion, np.array([0.0, 0.0, np.sqrt(0.5), np.sqrt(0.5)])
    )

    euler = np.array([0.3, -0.4, 1.2])
    np.testing.assert_almost_equal(quaternion_to_euler(euler_to_quaternion(*euler)), euler)


def test_pose_and_dof_transforms():
    transform = pose_to_transform([1.0, 2.0, 3.0], euler_to_quaternion(0.0, 0.0, HALF_PI))
    np.testing.assert_almost_equal(transform.translation, np.array([1.0, 2.0, 3.0]))
    np.testing.assert_almost_equal(
        transform.rotation, euler_to_rotation_matrix(0.0, 0.0, HALF_PI)
    )

    transform = dof_to_transform(np.array([1.0, 0.0, 0.0, 0.0, 0.0, HALF_PI]))
    np.testing.assert_almost_equal(transform.translation, np.array([1.0, 0.0, 0.0]))
    np.testing.assert_almost_equal(
        transform.rotation, euler_to_rotation_matrix(0.0, 0.0, HALF_PI)
    )


def test_quaternion_sign_handling():
    quaternion = euler_to_quaternion(0.1, 0.2, 0.3)
    np.testing.assert_array_equal(align_quaternion(-quaternion, quaternion), quaternion)
    assert quaternion_distance(quaternion, -quaternion) == pytest.approx(0.0)
    assert quaternion_angle(quaternion, -quaternion) == pytest.approx(0.0, abs=1e-6)

    other = euler_to_quaternion(0.0, 0.0, 0.3 + HALF_PI)
    assert quaternion_angle(
        euler_to_quaternion(0.0, 0.0, 0.3), other
    ) == pytest.approx(HALF_PI)


def test_get_transform_difference():
    a = pose_to_transform([1.0, 1.0, 0.0], euler_to_quaternion(0.0, 0.0, 0.2))
    b = pose_to_transform([0.0, 1.0, 0.0], -euler_to_quaternion(0.0, 0.0, 0.2))
    pos_delta, quat_delta = get_transform_difference(a, b)
    np.testing.assert_almost_equal(pos_delta, np.array([1.0, 0.0, 0.0]))
    np.testing.assert_almost_equal(quat_delta, np.zeros(4))


def test_clamp_euler_value():
    assert clamp_euler_value(0.5) == pytest.approx(0.5)
    assert clamp_euler_value(np.pi) == pytest.approx(np.pi)
    assert clamp_euler_value(-np.pi) == pytest.approx(np.pi)
    assert clamp_euler_value(3.0 * np.pi / 2.0) == pytest.approx(-np.pi / 2.0)
    assert clamp_euler_value(-7.0) == pytest.approx(-7.0 + 2.0 * np.pi)


def test_to_smallest_euler_value_distance():
    assert to_smallest_euler_value_distance(0.0, 2.0 * np.pi + 0.1) == pytest.approx(0.1)
    assert to_smallest_euler_value_distance(4.0 * np.pi, 0.1) == pytest.approx(4.0 * np.pi + 0.1)
    assert to_smallest_euler_value_distance(3.0, -3.0) == pytest.approx(2.0 * np.pi - 3.0)


def test_redundant_euler_representation():
    euler = np.array([0.3, 0.2, -0.1])
    redundant = get_redundant_euler_representation(euler)
    np.testing.assert_almost_equal(redundant, np.array([0.3 + np.pi, np.pi - 0.2, -0.1 + np.pi]))
    np.testing.assert_almost_equal(
        euler_to_rotation_matrix(*redundant), euler_to_rotation_matrix(*euler)
    )


def test_redundant_twist():
    assert is_redundant_twist(np.array([0.0, HALF_PI, 0.0]))
    assert is_redundant_twist(np.array([0.0, -HALF_PI, 0.0]))
    assert not is_redundant_twist(np.array([0.0, 0.5, 0.0]))

    assert to_smallest_redundant_twist_representation(np.zeros(3), np.array([0.0, 0.5, 0.0])) is None

    # At a pitch of -pi/2 only the sum of the X and Z angles matters.
    euler = np.array([1.0, -HALF_PI, 0.5])
    result = to_smallest_redundant_twist_representation(np.zeros(3), euler)
    np.testing.assert_almost_equal(result, np.array([0.0, -HALF_PI, 1.5]))
    np.testing.assert_almost_equal(
        euler_to_rotation_matrix(*result), euler_to_rotation_matrix(*euler)
    )


def test_get_closest_euler_representation():
    target = np.array([0.0, 0.0, 0.0])
    euler = np.array([np.pi - 0.1, np.pi - 0.2, np.pi - 0.3])
    result = get_closest_euler_representation(target, euler)

    # The flipped representation is closest.
    np.testing.assert_almost_equal(result, np.array([-0.1, 0.2, -0.3]))
    np.testing.assert_almost_equal(
        euler_to_rotation_matrix(*result), euler_to_rotation_matrix(*euler)
    )
    assert diff_euler_distance(target, result) <= diff_euler_distance(target, euler)
