import numpy as np
import pytest

from pyroboik.core.goal import Goal
from pyroboik.core.joint import DOF, Joint
from pyroboik.core.link import Link
from pyroboik.ik.chain_solver import SolveStatus
from pyroboik.ik.solver import Solver, SolverOptions
from pyroboik.models.four_bar import create_four_bar
from pyroboik.models.planar_arm import create_planar_arm


def create_revolute_rig(goal_position, start_angle=0.0):
    base, joints, effector = create_planar_arm(num_links=1, link_length=1.0)
    joint = joints[0]
    joint.set_min_limit(DOF.EZ, 0.0)
    joint.set_max_limit(DOF.EZ, np.pi)
    joint.set_dof_values(start_angle)

    goal = Goal("goal")
    goal.set_goal_dof(DOF.X, DOF.Y, DOF.Z)
    goal.set_position(*goal_position)
    goal.make_closure(effector)
    return base, joint, goal


def test_default_options():
    options = SolverOptions()
    assert options.max_iterations == 5
    assert options.stall_threshold == pytest.approx(1e-4)
    assert options.damping_factor == pytest.approx(1e-3)
    assert options.divergence_threshold == pytest.approx(0.01)
    assert options.translation_converge_threshold == pytest.approx(1e-3)
    assert options.rotation_converge_threshold == pytest.approx(1e-5)
    assert not options.use_svd


def test_solver_structure():
    base, joint, goal = create_revolute_rig((0.0, 1.0, 0.0))
    solver = Solver(base)

    # The goal is found through its closure.
    assert len(solver.chains) == 1
    assert goal in solver.chains[0]
    assert joint in solver.chains[0]
    assert solver.free_joints == []

    goal.remove_child(goal.child)
    solver.update_structure()
    assert solver.chains == []
    assert solver.free_joints == [joint]


def test_solve_nothing_warns():
    solver = Solver(Link("empty"))
    with pytest.warns(UserWarning):
        assert solver.solve() == []


def test_solve_snaps_free_joint_to_target():
    base = Link("base")
    joint = Joint("joint")
    joint.set_dof(DOF.X, DOF.EZ)
    joint.set_min_limits(-1.0, -1.0)
    joint.set_max_limits(1.0, 1.0)
    base.add_child(joint)
    link = Link("link")
    joint.add_child(link)

    joint.set_target_values(0.5, 3.0)

    # No iterations are needed to reach the target of an unconstrained joint.
    solver = Solver([base], SolverOptions(max_iterations=0))
    assert solver.solve() == []
    assert joint.get_dof_value(DOF.X) == 0.5
    assert joint.get_dof_value(DOF.EZ) == 1.0
    np.testing.assert_almost_equal(link.get_world_position(), np.array([0.5, 0.0, 0.0]))


def test_solve_copies_options():
    ground, _, _ = create_four_bar()
    options = SolverOptions()
    solver = Solver(ground, options)
    assert solver.options is options

    solver.solve()
    chain_options = solver.solvers[0].options
    assert chain_options is not options
    assert chain_options.max_iterations == options.max_iterations


def test_solve_revolute_joint_to_goal():
    base, joint, goal = create_revolute_rig((0.0, 1.0, 0.0))
    options = SolverOptions(
        max_iterations=100,
        stall_threshold=1e-9,
        translation_converge_threshold=1e-6,
    )
    solver = Solver([base, goal], options)

    assert solver.solve() == [SolveStatus.CONVERGED]
    assert joint.get_dof_value(DOF.EZ) == pytest.approx(
        np.pi / 2.0, abs=options.rotation_converge_threshold
    )


def test_solve_revolute_joint_to_limit():
    # At 0 the goal is directly behind the effector, so the Jacobian column is
    # orthogonal to the error and the step is zero.
    base, joint, goal = create_revolute_rig((-1.0, 0.0, 0.0), start_angle=0.5)
    options = SolverOptions(
        max_iterations=200,
        stall_threshold=1e-12,
        translation_converge_threshold=1e-9,
    )
    solver = Solver([base, goal], options)

    results = solver.solve()
    assert results[0] in (SolveStatus.CONVERGED, SolveStatus.STALLED)

    # The goal lies exactly on the upper limit, which is never exceeded.
    assert joint.get_dof_value(DOF.EZ) == pytest.approx(np.pi, abs=1e-6)
    assert joint.get_dof_value(DOF.EZ) <= np.pi


def test_solve_two_joint_loop():
    angle = 0.6

    root = Link("root")
    joint_a = Joint("a")
    joint_a.set_dof(DOF.EZ)
    root.add_child(joint_a)
    link_a = Link("link_a")
    joint_a.add_child(link_a)

    joint_b = Joint("b")
    joint_b.set_dof(DOF.EZ)
    joint_b.set_position(1.0, 0.0, 0.0)
    link_a.add_child(joint_b)
    link_b = Link("link_b")
    joint_b.add_child(link_b)

    # The loop closes when the two joints rotate by a combined angle.
    anchor = Joint("anchor")
    anchor.set_position(1.0 + np.cos(angle), np.sin(angle), 0.0)
    anchor.set_euler(0.0, 0.0, angle)
    root.add_child(anchor)
    target = Link("target")
    anchor.add_child(target)

    closure = Joint("closure")
    closure.set_position(1.0, 0.0, 0.0)
    link_b.add_child(closure)
    closure.make_closure(target)

    options = SolverOptions(
        max_iterations=500, stall_threshold=1e-12, divergence_threshold=1.0
    )
    solver = Solver(root, options)
    assert solver.solve() == [SolveStatus.CONVERGED]

    pos_error, _ = closure.get_closure_error()
    assert np.linalg.norm(pos_error) < options.translation_converge_threshold
    total_angle = joint_a.get_dof_value(DOF.EZ) + joint_b.get_dof_value(DOF.EZ)
    assert total_angle == pytest.approx(angle, abs=1e-3)
