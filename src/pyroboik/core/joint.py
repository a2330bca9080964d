""" Joints with up to six degrees of freedom. """

from enum import IntEnum

import numpy as np
import pinocchio

from .frame import Frame
from .utils import (
    dof_to_transform,
    euler_to_quaternion,
    get_closest_euler_representation,
    get_transform_difference,
    quaternion_to_euler,
    to_smallest_euler_value_distance,
)


class DOF(IntEnum):
    """Indices of the degrees of freedom of a joint."""

    X = 0
    Y = 1
    Z = 2
    EX = 3
    EY = 4
    EZ = 5


TRANSLATION_DOF = (DOF.X, DOF.Y, DOF.Z)
ROTATION_DOF = (DOF.EX, DOF.EY, DOF.EZ)


class Joint(Frame):
    """
    A frame whose transform is driven by up to six degrees of freedom.

    The degrees of freedom are three translations along the X, Y, and Z axes followed
    by three Euler rotations about the X, Y, and Z axes. The world transform of a joint is
    its parent's world transform, then its own local transform, then the transform
    described by its degree of freedom values.

    A joint has at most one child link. The child is either a regular child in the
    tree, or a closure target elsewhere in the graph which forms a kinematic loop.
    """

    is_joint = True

    def __init__(self, name=""):
        super().__init__(name)

        self.child = None
        self.is_closure = False

        self.track_joint_wrap = False
        self.rotation_dof_count = 0
        self.translation_dof_count = 0

        self.dof = []
        self.dof_flags = np.zeros(6, dtype=np.uint8)
        self.dof_values = np.zeros(6)
        self.dof_target = np.zeros(6)
        self.dof_rest_pose = np.zeros(6)

        self.min_dof_limit = np.full(6, -np.inf)
        self.max_dof_limit = np.full(6, np.inf)

        self.target_set = False
        self.rest_pose_set = False

        self.matrix_dof_needs_update = False
        self.matrix_dof = pinocchio.SE3.Identity()

        # World transform of the joint with all degrees of freedom at zero.
        self.cached_identity_dof_matrix_world = pinocchio.SE3.Identity()

    def _set_value(self, target, dof, value):
        if not isinstance(dof, (int, np.integer)) or not 0 <= dof < 6:
            raise ValueError(f"Joint: Invalid degree of freedom {dof}.")

        if not self.dof_flags[dof]:
            return False

        min_value = self.min_dof_limit[dof]
        max_value = self.max_dof_limit[dof]
        value = min(max(value, min_value), max_value)

        target[dof] = value
        return value == min_value or value == max_value

    def _set_values(self, target, values):
        for dof, value in zip(self.dof, values):
            self._set_value(target, dof, value)

    def _get_quaternion(self, values):
        return euler_to_quaternion(values[DOF.EX], values[DOF.EY], values[DOF.EZ])

    # Degrees of freedom
    def clear_dof(self):
        """Removes all degrees of freedom from the joint."""
        self.set_dof()

    def set_dof(self, *dofs):
        """
        Sets the active degrees of freedom of the joint and resets all values and limits.

        Parameters
        ----------
            *dofs : `pyroboik.core.joint.DOF`
                The degrees of freedom to enable, translations first and in X, Y, Z order.
        """
        for i, dof in enumerate(dofs):
            if not isinstance(dof, (int, np.integer)) or not 0 <= dof < 6:
                raise ValueError(f"Joint: Invalid degree of freedom enum {dof}.")

            if dof in dofs[i + 1 :]:
                raise ValueError(
                    f"Joint: Duplicate degree of freedom {DOF(dof).name} specified."
                )

            if i != 0 and dofs[i - 1] > dof:
                raise ValueError(
                    "Joint: Joints degrees of freedom must be specified in position then rotation, XYZ order."
                )

        self.dof = [DOF(d) for d in dofs]
        self.dof_values.fill(0.0)
        self.dof_target.fill(0.0)
        self.dof_rest_pose.fill(0.0)

        self.min_dof_limit.fill(-np.inf)
        self.max_dof_limit.fill(np.inf)
        self.set_matrix_dof_needs_update()

        for i in range(6):
            self.dof_flags[i] = 1 if i in self.dof else 0

        self.translation_dof_count = int(np.sum(self.dof_flags[:3]))
        self.rotation_dof_count = int(np.sum(self.dof_flags[3:]))

    # Values
    def set_dof_values(self, *values):
        """Sets the values of the active degrees of freedom, in the order of `self.dof`."""
        self.set_matrix_dof_needs_update()
        self._set_values(self.dof_values, values)

    def set_dof_value(self, dof, value):
        """
        Sets the value of a single degree of freedom, clamped to its limits.

        Parameters
        ----------
            dof : `pyroboik.core.joint.DOF`
                The degree of freedom to set.
            value : float
                The value to set.

        Returns
        -------
            bool
                True if the resulting value sits on one of the limits, otherwise False.
        """
        self.set_matrix_dof_needs_update()
        return self._set_value(self.dof_values, dof, value)

    def get_dof_value(self, dof):
        return float(self.dof_values[dof])

    def get_dof_position(self):
        return self.dof_values[:3].copy()

    def get_dof_euler(self):
        return self.dof_values[3:].copy()

    def get_dof_quaternion(self):
        return self._get_quaternion(self.dof_values)

    # Rest pose
    def set_rest_pose_values(self, *values):
        """Sets the rest pose of the active degrees of freedom, in the order of `self.dof`."""
        self.rest_pose_set = True
        self._set_values(self.dof_rest_pose, values)

    def set_rest_pose_value(self, dof, value):
        """Sets the rest pose of a single degree of freedom. Returns True if it was clamped to a limit."""
        self.rest_pose_set = True
        return self._set_value(self.dof_rest_pose, dof, value)

    def clear_rest_pose(self):
        self.rest_pose_set = False

    def get_rest_pose_value(self, dof):
        return float(self.dof_rest_pose[dof])

    def get_rest_pose_position(self):
        return self.dof_rest_pose[:3].copy()

    def get_rest_pose_euler(self):
        return self.dof_rest_pose[3:].copy()

    def get_rest_pose_quaternion(self):
        return self._get_quaternion(self.dof_rest_pose)

    # Target
    def set_target_values(self, *values):
        """Sets the target of the active degrees of freedom, in the order of `self.dof`."""
        self.target_set = True
        self._set_values(self.dof_target, values)

    def set_target_value(self, dof, value):
        """Sets the target of a single degree of freedom. Returns True if it was clamped to a limit."""
        self.target_set = True
        return self._set_value(self.dof_target, dof, value)

    def set_target_from_quaternion(self, x, y, z, w):
        """
        Sets the rotational targets of the joint from a quaternion.

        If `track_joint_wrap` is set, the Euler angles equivalent to the quaternion that
        are closest to the current values are used.

        Parameters
        ----------
            x, y, z, w : float
                The target rotation as a quaternion.
        """
        euler = quaternion_to_euler(np.array([x, y, z, w]))
        if self.track_joint_wrap:
            euler = get_closest_euler_representation(self.dof_values[3:], euler)

        self.target_set = True
        for dof, value in zip(ROTATION_DOF, euler):
            self._set_value(self.dof_target, dof, value)
        self.try_minimize_euler_angles()

    def clear_target(self):
        self.target_set = False

    def get_target_value(self, dof):
        return float(self.dof_target[dof])

    def get_target_position(self):
        return self.dof_target[:3].copy()

    def get_target_euler(self):
        return self.dof_target[3:].copy()

    def get_target_quaternion(self):
        return self._get_quaternion(self.dof_target)

    # Limits
    def set_min_limits(self, *values):
        """Sets the lower limits of the active degrees of freedom, in the order of `self.dof`."""
        for dof, value in zip(self.dof, values):
            self.set_min_limit(dof, value)

    def set_min_limit(self, dof, value):
        """Sets the lower limit of a degree of freedom and clamps its current value. Returns True if clamped."""
        self.min_dof_limit[dof] = value
        return self.set_dof_value(dof, self.dof_values[dof])

    def get_min_limit(self, dof):
        return float(self.min_dof_limit[dof])

    def set_max_limits(self, *values):
        """Sets the upper limits of the active degrees of freedom, in the order of `self.dof`."""
        for dof, value in zip(self.dof, values):
            self.set_max_limit(dof, value)

    def set_max_limit(self, dof, value):
        """Sets the upper limit of a degree of freedom and clamps its current value. Returns True if clamped."""
        self.max_dof_limit[dof] = value
        return self.set_dof_value(dof, self.dof_values[dof])

    def get_max_limit(self, dof):
        return float(self.max_dof_limit[dof])

    # Closures
    def get_closure_error(self):
        """
        Returns the error between this closure joint and its closure target link.

        Returns
        -------
            tuple(array-like, array-like)
                The world position difference (joint - link) and the quaternion difference
                (joint - link), using the sign of the link quaternion closest to the joint's.
        """
        if not self.is_closure:
            raise ValueError("Joint: Cannot get closure error on non closure Joint.")

        self.update_matrix_world()
        self.child.update_matrix_world()
        return get_transform_difference(self.matrix_world, self.child.matrix_world)

    def try_minimize_euler_angles(self):
        """
        Rewraps the target and rest pose Euler angles to the equivalent angles closest to the current values.

        With three rotational degrees of freedom, the gimbal flipped and gimbal locked
        representations are considered as well. This is skipped when `track_joint_wrap`
        is set, since wrapping is then meaningful.
        """
        if self.track_joint_wrap:
            return

        dof_values = self.dof_values
        if self.rotation_dof_count == 0:
            return

        elif self.rotation_dof_count < 3:
            for i in ROTATION_DOF:
                self.dof_target[i] = to_smallest_euler_value_distance(
                    dof_values[i], self.dof_target[i]
                )
                self.dof_rest_pose[i] = to_smallest_euler_value_distance(
                    dof_values[i], self.dof_rest_pose[i]
                )

        else:
            current = dof_values[3:].copy()
            self.dof_target[3:] = get_closest_euler_representation(
                current, self.dof_target[3:]
            )
            self.dof_rest_pose[3:] = get_closest_euler_representation(
                current, self.dof_rest_pose[3:]
            )

    def get_delta_world_matrix(self, dof, delta):
        """
        Computes the world transform of the joint after perturbing one degree of freedom, without changing the joint.

        If the perturbation would cross a limit and there is more room in the other
        direction, the joint is perturbed by `-delta` instead.

        Parameters
        ----------
            dof : `pyroboik.core.joint.DOF`
                The degree of freedom to perturb.
            delta : float
                The perturbation amount.

        Returns
        -------
            tuple(`pinocchio.SE3`, bool)
                The perturbed world transform, and whether the perturbation direction was inverted.
        """
        self.update_matrix_world()

        values = self.dof_values.copy()
        min_value = self.min_dof_limit[dof]
        max_value = self.max_dof_limit[dof]
        curr_value = values[dof]

        min_slack = curr_value - min_value
        max_slack = max_value - curr_value

        new_value = curr_value + delta
        is_max_constrained = delta > 0 and new_value > max_value
        is_min_constrained = delta < 0 and new_value < min_value
        do_invert = (is_max_constrained and min_slack > max_slack) or (
            is_min_constrained and max_slack > min_slack
        )
        if do_invert:
            new_value = curr_value - delta

        values[dof] = new_value
        return self.cached_identity_dof_matrix_world * dof_to_transform(values), do_invert

    # Matrix updates
    def set_matrix_dof_needs_update(self):
        if not self.matrix_dof_needs_update:
            self.matrix_dof_needs_update = True
            self.set_matrix_world_needs_update()

    def update_dof_matrix(self):
        if self.matrix_dof_needs_update:
            self.matrix_dof = dof_to_transform(self.dof_values)
            self.matrix_dof_needs_update = False

    def compute_matrix_world(self):
        self.update_dof_matrix()

        if self.parent is not None:
            self.cached_identity_dof_matrix_world = self.parent.matrix_world * self.matrix
        else:
            self.cached_identity_dof_matrix_world = self.matrix.copy()
        self.matrix_world = self.cached_identity_dof_matrix_world * self.matrix_dof

    # Children
    def make_closure(self, child):
        """
        Closes a kinematic loop by connecting this joint to an existing link.

        The link is not added to `children`, so traversals do not follow the loop.

        Parameters
        ----------
            child : `pyroboik.core.link.Link`
                The link that this joint should coincide with.
        """
        if not child.is_link or self.child is not None or child.parent is self:
            raise ValueError("Joint: Given child cannot be used to make closure.")

        self.child = child
        self.is_closure = True
        child.closure_joints.append(self)

    def add_child(self, child):
        if not child.is_link or self.child is not None or child.parent is self:
            raise ValueError("Joint: Given child cannot be added to Joint.")

        super().add_child(child)
        self.child = child
        self.is_closure = False

    def remove_child(self, child):
        if self.is_closure:
            if self.child is not child:
                raise ValueError("Joint: Child to be removed is not a child of this Joint.")

            self.child = None
            self.is_closure = False
            child.closure_joints.remove(self)
        else:
            super().remove_child(child)
            self.child = None

    def detach_child(self, child):
        if self.is_closure:
            raise ValueError("Joint: Closure links cannot be detached, use remove_child.")
        super().detach_child(child)
