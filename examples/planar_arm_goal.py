"""
This example shows PyRoboIK moving a planar arm to a position goal.
The arm has more joints than needed to reach the goal, so a rest pose on the
first joint is used to choose between the possible solutions.
"""

import numpy as np

from pyroboik.core.goal import Goal
from pyroboik.core.joint import DOF
from pyroboik.ik.solver import Solver, SolverOptions
from pyroboik.models.planar_arm import create_planar_arm


if __name__ == "__main__":
    np.set_printoptions(precision=3, suppress=True)

    # Create the arm and a goal for its end effector
    base, joints, effector = create_planar_arm(num_links=3, link_length=0.5)
    for joint in joints:
        joint.set_min_limits(-np.pi / 2.0)
        joint.set_max_limits(np.pi / 2.0)
    joints[0].set_rest_pose_values(0.5)

    goal = Goal("goal")
    goal.set_goal_dof(DOF.X, DOF.Y, DOF.Z)
    goal.make_closure(effector)

    # Set up the IK solver
    options = SolverOptions(
        max_iterations=100,
        rest_pose_factor=0.1,
        divergence_threshold=1.0,
    )
    solver = Solver([base, goal], options)

    for target in [(1.0, 0.5, 0.0), (0.5, 1.0, 0.0), (-0.5, 0.8, 0.0)]:
        goal.set_position(*target)
        results = solver.solve(verbose=True)
        joint_values = np.array([j.get_dof_value(DOF.EZ) for j in joints])
        print(f"Target: {np.array(target)}")
        print(f"Effector position: {effector.get_world_position()}")
        print(f"Joint values: {joint_values}")
        print(f"Status: {results[0].name}\n")
