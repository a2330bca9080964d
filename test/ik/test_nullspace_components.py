import numpy as np
import pytest

from pyroboik.core.joint import DOF, Joint
from pyroboik.ik.nullspace_components import (
    get_free_dof,
    project_to_nullspace,
    rest_pose_nullspace_component,
)


def test_get_free_dof():
    joint = Joint()
    joint.set_dof(DOF.X, DOF.EX, DOF.EZ)
    assert get_free_dof(joint) == [DOF.X, DOF.EX, DOF.EZ]

    locked = np.zeros(6, dtype=bool)
    locked[DOF.EX] = True
    assert get_free_dof(joint, locked) == [DOF.X, DOF.EZ]


def test_rest_pose_nullspace_component():
    with_rest_pose = Joint("with_rest_pose")
    with_rest_pose.set_dof(DOF.X, DOF.EZ)
    with_rest_pose.set_dof_values(1.0, 0.5)
    with_rest_pose.set_rest_pose_values(0.0, 1.0)

    without_rest_pose = Joint("without_rest_pose")
    without_rest_pose.set_dof(DOF.EY)
    without_rest_pose.set_dof_values(2.0)

    joints = [with_rest_pose, without_rest_pose]
    component = rest_pose_nullspace_component(joints)
    assert component.shape == (3,)
    np.testing.assert_almost_equal(component, np.array([-1.0, 0.5, 0.0]))

    # Locked degrees of freedom are skipped, and the gain scales the result.
    locked = {with_rest_pose: np.array([True, False, False, False, False, False])}
    component = rest_pose_nullspace_component(joints, locked, gain=2.0)
    np.testing.assert_almost_equal(component, np.array([1.0, 0.0]))


def test_project_to_nullspace():
    jacobian = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
    pseudo_inverse = np.linalg.pinv(jacobian)
    component = np.array([1.0, 2.0, 3.0])

    projected = project_to_nullspace(jacobian, pseudo_inverse, component)
    np.testing.assert_almost_equal(projected, np.array([0.0, 0.0, 3.0]))
    np.testing.assert_almost_equal(jacobian @ projected, np.zeros(2))
    assert np.linalg.norm(projected) == pytest.approx(3.0)
