""" Core utilities for poses, quaternions, and Euler angles. """

import numpy as np
import pinocchio

# Angle at which the middle Euler axis makes the first and last axes coincide.
HALF_PI = 0.5 * np.pi
TWO_PI = 2.0 * np.pi
REDUNDANT_TWIST_TOLERANCE = 1e-7


def euler_to_rotation_matrix(x, y, z):
    """
    Converts a set of Euler angles to a rotation matrix.

    The rotation is applied about X, then Y, then Z, all in the parent frame (R = Rz * Ry * Rx).

    Parameters
    ----------
        x : float
            The rotation about the X axis, in radians.
        y : float
            The rotation about the Y axis, in radians.
        z : float
            The rotation about the Z axis, in radians.

    Returns
    -------
        array-like
            The 3x3 rotation matrix.
    """
    return pinocchio.rpy.rpyToMatrix(float(x), float(y), float(z))


def euler_to_quaternion(x, y, z):
    """
    Converts a set of Euler angles to a quaternion.

    Parameters
    ----------
        x : float
            The rotation about the X axis, in radians.
        y : float
            The rotation about the Y axis, in radians.
        z : float
            The rotation about the Z axis, in radians.

    Returns
    -------
        array-like
            The quaternion, in (x, y, z, w) order.
    """
    return rotation_matrix_to_quaternion(euler_to_rotation_matrix(x, y, z))


def quaternion_to_euler(quaternion):
    """
    Converts a quaternion to a set of Euler angles.

    Parameters
    ----------
        quaternion : array-like
            The quaternion, in (x, y, z, w) order.

    Returns
    -------
        array-like
            The Euler angles (x, y, z), in radians, with the Y angle in the range [-pi/2, pi/2].
    """
    return pinocchio.rpy.matrixToRpy(quaternion_to_rotation_matrix(quaternion))


def rotation_matrix_to_quaternion(rotation):
    """Returns the (x, y, z, w) quaternion of a 3x3 rotation matrix."""
    return np.array(pinocchio.Quaternion(rotation).coeffs())


def quaternion_to_rotation_matrix(quaternion):
    """Returns the 3x3 rotation matrix of an (x, y, z, w) quaternion."""
    x, y, z, w = quaternion
    q = pinocchio.Quaternion(float(w), float(x), float(y), float(z))
    q.normalize()
    return q.toRotationMatrix()


def pose_to_transform(position, quaternion):
    """
    Builds a transform from a position and a quaternion.

    Parameters
    ----------
        position : array-like
            The translation of the transform.
        quaternion : array-like
            The rotation of the transform, as an (x, y, z, w) quaternion.

    Returns
    -------
        `pinocchio.SE3`
            The resulting transform.
    """
    return pinocchio.SE3(
        quaternion_to_rotation_matrix(quaternion), np.array(position, dtype=float)
    )


def dof_to_transform(dof_values):
    """
    Builds the transform described by a six element array of joint degree of freedom values.

    Parameters
    ----------
        dof_values : array-like
            The (X, Y, Z, EX, EY, EZ) values of a joint.

    Returns
    -------
        `pinocchio.SE3`
            The transform translating by (X, Y, Z) and rotating by the Euler angles (EX, EY, EZ).
    """
    return pinocchio.SE3(
        euler_to_rotation_matrix(dof_values[3], dof_values[4], dof_values[5]),
        np.array(dof_values[:3], dtype=float),
    )


def get_transform_position(transform):
    """Returns a copy of the translation of a transform."""
    return np.array(transform.translation)


def get_transform_quaternion(transform):
    """Returns the rotation of a transform as an (x, y, z, w) quaternion."""
    return rotation_matrix_to_quaternion(transform.rotation)


def align_quaternion(quaternion, reference):
    """
    Returns the sign of a quaternion that lies closest to a reference quaternion.

    Both signs describe the same rotation, so this selects the one whose relative
    rotation to the reference has a non-negative scalar part.

    Parameters
    ----------
        quaternion : array-like
            The quaternion to align.
        reference : array-like
            The reference quaternion.

    Returns
    -------
        array-like
            Either the quaternion or its negation.
    """
    quaternion = np.array(quaternion, dtype=float)
    if np.dot(quaternion, reference) < 0.0:
        return -quaternion
    return quaternion


def smallest_difference_quaternion(a, b):
    """
    Returns the component-wise difference a - b using whichever sign of b is closest to a.

    Parameters
    ----------
        a : array-like
            The first quaternion.
        b : array-like
            The second quaternion.

    Returns
    -------
        array-like
            The 4-element difference vector.
    """
    a = np.array(a, dtype=float)
    return a - align_quaternion(b, a)


def quaternion_distance(a, b):
    """Returns the magnitude of the smallest component-wise difference between two quaternions."""
    return np.linalg.norm(smallest_difference_quaternion(a, b))


def quaternion_squared_distance(a, b):
    """Returns the squared magnitude of the smallest component-wise difference between two quaternions."""
    diff = smallest_difference_quaternion(a, b)
    return np.dot(diff, diff)


def quaternion_angle(a, b):
    """
    Returns the angle, in radians, of the shortest rotation between two quaternions.

    Parameters
    ----------
        a : array-like
            The first quaternion.
        b : array-like
            The second quaternion.

    Returns
    -------
        float
            The rotation angle in the range [0, pi].
    """
    a = np.array(a, dtype=float) / np.linalg.norm(a)
    b = np.array(b, dtype=float) / np.linalg.norm(b)
    return 2.0 * np.arccos(np.clip(abs(np.dot(a, b)), 0.0, 1.0))


def get_transform_difference(a, b):
    """
    Returns the position and quaternion difference a - b between two transforms.

    Parameters
    ----------
        a : `pinocchio.SE3`
            The first transform.
        b : `pinocchio.SE3`
            The second transform.

    Returns
    -------
        tuple(array-like, array-like)
            The 3-element position difference and the 4-element quaternion difference.
    """
    pos_delta = get_transform_position(a) - get_transform_position(b)
    quat_delta = smallest_difference_quaternion(
        get_transform_quaternion(a), get_transform_quaternion(b)
    )
    return pos_delta, quat_delta


def clamp_euler_value(value):
    """
    Wraps an angle to the range (-pi, pi].

    Parameters
    ----------
        value : float
            The angle to wrap, in radians.

    Returns
    -------
        float
            The wrapped angle.
    """
    result = value % TWO_PI
    if result > np.pi:
        result -= TWO_PI
    elif result <= -np.pi:
        result += TWO_PI
    return result


def to_smallest_euler_value_distance(target, to_adjust):
    """
    Returns the angle equivalent to `to_adjust`, modulo 2*pi, that is closest to `target`.

    Parameters
    ----------
        target : float
            The angle to get close to, in radians.
        to_adjust : float
            The angle to rewrap, in radians.

    Returns
    -------
        float
            The rewrapped angle, within pi of the target.
    """
    whole_rotation = round(target / TWO_PI) * TWO_PI
    result = whole_rotation + clamp_euler_value(to_adjust)
    delta = result - target
    if abs(delta) > np.pi:
        result -= np.sign(delta) * TWO_PI
    return result


def to_smallest_euler_distance(target, to_adjust):
    """Applies `to_smallest_euler_value_distance` to each of three Euler angles."""
    return np.array(
        [to_smallest_euler_value_distance(t, a) for t, a in zip(target, to_adjust)]
    )


def diff_euler_distance(a, b):
    """Returns the L1 distance between two sets of Euler angles."""
    return float(np.sum(np.abs(np.asarray(a) - np.asarray(b))))


def get_redundant_euler_representation(euler):
    """
    Returns the alternate set of Euler angles that describes the same rotation.

    Parameters
    ----------
        euler : array-like
            The Euler angles (x, y, z), in radians.

    Returns
    -------
        array-like
            The equivalent angles (x + pi, pi - y, z + pi).
    """
    return np.array([euler[0] + np.pi, np.pi - euler[1], euler[2] + np.pi])


def is_redundant_twist(euler):
    """Returns True if the Y angle is at +/- pi/2, where the X and Z axes line up."""
    pivot_angle = clamp_euler_value(euler[1])
    return abs(abs(pivot_angle) - HALF_PI) <= REDUNDANT_TWIST_TOLERANCE


def to_smallest_redundant_twist_representation(target, to_adjust):
    """
    Redistributes the combined X/Z twist of a gimbal locked rotation to best match a target.

    Parameters
    ----------
        target : array-like
            The Euler angles to get close to.
        to_adjust : array-like
            The gimbal locked Euler angles to rewrite.

    Returns
    -------
        array-like or None
            The equivalent Euler angles closest to the target, or None if `to_adjust` is not gimbal locked.
    """
    if not is_redundant_twist(to_adjust):
        return None

    # At +pi/2 only x - z matters, and at -pi/2 only x + z.
    pivot_angle = clamp_euler_value(to_adjust[1])
    z_rotation_sign = -1.0 * np.sign(pivot_angle)
    combined_x_rotation = to_adjust[0] + z_rotation_sign * to_adjust[2]

    output = np.array(
        [
            target[0],
            to_smallest_euler_value_distance(target[1], to_adjust[1]),
            to_smallest_euler_value_distance(
                target[2], z_rotation_sign * (combined_x_rotation - target[0])
            ),
        ]
    )
    return to_smallest_euler_distance(target, output)


def get_closest_euler_representation(target, euler):
    """
    Finds the set of Euler angles equivalent to `euler` that is closest to `target`.

    Candidates are the direct per-axis rewrap and the flipped representation. When the
    angles are gimbal locked, the redistributed twist representations are considered as well.

    Parameters
    ----------
        target : array-like
            The Euler angles to get close to.
        euler : array-like
            The Euler angles to rewrite.

    Returns
    -------
        array-like
            The equivalent Euler angles with the smallest L1 distance to the target.
    """
    candidates = []
    if is_redundant_twist(euler):
        candidates.append(to_smallest_redundant_twist_representation(target, euler))
        flipped = to_smallest_redundant_twist_representation(
            target, get_redundant_euler_representation(euler)
        )
        if flipped is not None:
            candidates.append(flipped)

    candidates.append(to_smallest_euler_distance(target, euler))
    candidates.append(
        to_smallest_euler_distance(target, get_redundant_euler_representation(euler))
    )

    return min(candidates, key=lambda c: diff_euler_distance(target, c))
