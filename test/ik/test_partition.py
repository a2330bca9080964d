from pyroboik.core.goal import Goal
from pyroboik.core.joint import DOF, Joint
from pyroboik.core.link import Link
from pyroboik.ik.partition import (
    find_roots,
    get_joint_path,
    get_topmost_parent,
    partition_chains,
)
from pyroboik.models.four_bar import create_four_bar
from pyroboik.models.planar_arm import create_planar_arm


def test_get_topmost_parent_and_joint_path():
    base, joints, effector = create_planar_arm(num_links=2)
    assert get_topmost_parent(effector) is base
    assert get_topmost_parent(base) is base

    path = get_joint_path(effector)
    assert [j.name for j in path] == ["tip_joint", "joint2", "joint1"]


def test_find_roots_follows_closures():
    base, _, effector = create_planar_arm(num_links=2)
    goal = Goal("goal")
    goal.set_goal_dof(DOF.X, DOF.Y, DOF.Z)
    goal.make_closure(effector)

    # The arm is only reachable from the goal through its closure.
    roots = find_roots([goal])
    assert roots == [goal, base]

    # Duplicate roots are only returned once.
    roots = find_roots([base, effector, goal])
    assert roots == [base, goal]


def test_partition_four_bar():
    ground, joints, closure = create_four_bar()
    chains, free_joints = partition_chains([ground])

    assert len(chains) == 1
    assert set(chains[0]) == {
        joints["crank"],
        joints["coupler"],
        closure,
        joints["rocker"],
        ground.find(lambda f: f.name == "rocker_tip"),
    }
    assert free_joints == []


def test_partition_separate_chains():
    base, arm_joints, effector = create_planar_arm(num_links=2)
    goal = Goal("goal")
    goal.set_goal_dof(DOF.X, DOF.Y, DOF.Z)
    goal.make_closure(effector)

    # A second arm closed onto itself through a loop is independent of the first.
    ground, bar_joints, _ = create_four_bar()

    # A joint that no closure depends on.
    free_joint = Joint("free")
    free_joint.set_dof(DOF.EZ)
    base.add_child(free_joint)
    free_joint.add_child(Link("free_link"))

    chains, free_joints = partition_chains([base, ground])
    assert len(chains) == 2

    arm_chain = next(c for c in chains if goal in c)
    assert set(arm_chain) == set(arm_joints) | {goal, effector.parent}
    assert not any(j in arm_chain for j in bar_joints.values())
    assert free_joints == [free_joint]


def test_partition_merges_shared_joints():
    base, joints, effector = create_planar_arm(num_links=2)

    # Two goals on links of the same arm share the first joint.
    goal_1 = Goal("goal_1")
    goal_1.set_goal_dof(DOF.X, DOF.Y, DOF.Z)
    goal_1.make_closure(effector)

    goal_2 = Goal("goal_2")
    goal_2.set_goal_dof(DOF.X, DOF.Y, DOF.Z)
    goal_2.make_closure(joints[0].child)

    chains, free_joints = partition_chains([base])
    assert len(chains) == 1
    assert goal_1 in chains[0]
    assert goal_2 in chains[0]
    assert free_joints == []
