"""
This example shows PyRoboIK solving a closed kinematic loop.
A four-bar linkage is driven by setting a target on its crank joint, and the
solver moves the remaining joints so that the loop stays closed.
"""

import numpy as np

from pyroboik.core.joint import DOF
from pyroboik.ik.solver import Solver, SolverOptions
from pyroboik.models.four_bar import create_four_bar


if __name__ == "__main__":
    np.set_printoptions(precision=3, suppress=True)

    # Create the linkage and the solver
    ground, joints, closure = create_four_bar()
    options = SolverOptions(max_iterations=50, divergence_threshold=1.0)
    solver = Solver(ground, options)

    # Sweep the crank through a range of angles
    for crank_angle in np.linspace(np.pi / 2.0, np.pi, 6):
        joints["crank"].set_target_values(crank_angle)
        results = solver.solve(verbose=False)

        pos_error, _ = closure.get_closure_error()
        print(
            f"crank: {crank_angle:.3f}, "
            f"rocker: {joints['rocker'].get_dof_value(DOF.EZ):.3f}, "
            f"closure error: {np.linalg.norm(pos_error):.2e}, "
            f"status: {results[0].name}"
        )
