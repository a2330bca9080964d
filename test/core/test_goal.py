import numpy as np
import pytest

from pyroboik.core.goal import Goal
from pyroboik.core.joint import DOF
from pyroboik.core.link import Link


def test_goal_dof():
    goal = Goal("goal")
    assert goal.is_goal
    assert goal.is_joint

    goal.set_goal_dof(DOF.X, DOF.Y, DOF.Z)
    assert goal.dof == [DOF.X, DOF.Y, DOF.Z]
    assert goal.rotation_dof_count == 0

    goal.set_free_dof(DOF.Z)
    assert goal.dof == [DOF.X, DOF.Y, DOF.EX, DOF.EY, DOF.EZ]
    assert goal.rotation_dof_count == 3


def test_goal_partial_rotation_raises():
    goal = Goal("goal")
    with pytest.raises(ValueError):
        goal.set_goal_dof(DOF.X, DOF.EZ)
    with pytest.raises(ValueError):
        goal.set_free_dof(DOF.EX)


def test_goal_closure():
    goal = Goal("goal")
    goal.set_goal_dof(DOF.X, DOF.Y, DOF.Z)
    goal.set_position(1.0, 2.0, 3.0)

    effector = Link("effector")
    goal.make_closure(effector)
    assert goal.is_closure
    assert goal in effector.closure_joints

    pos_error, _ = goal.get_closure_error()
    np.testing.assert_almost_equal(pos_error, np.array([1.0, 2.0, 3.0]))


def test_goal_cannot_have_children():
    goal = Goal("goal")
    with pytest.raises(ValueError):
        goal.add_child(Link("link"))
    with pytest.raises(ValueError):
        goal.attach_child(Link("link"))
