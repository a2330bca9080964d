""" Top level IK solver for kinematic graphs with closures. """

import copy
import warnings

from .chain_solver import ChainSolver
from .matrix_pool import MatrixPool
from .partition import partition_chains


class SolverOptions:
    """Options for the IK solver."""

    def __init__(
        self,
        max_iterations=5,
        stall_threshold=1e-4,
        damping_factor=1e-3,
        divergence_threshold=0.01,
        rest_pose_factor=0.01,
        translation_converge_threshold=1e-3,
        rotation_converge_threshold=1e-5,
        translation_factor=1.0,
        rotation_factor=1.0,
        translation_step=1e-3,
        rotation_step=1e-3,
        translation_error_clamp=0.1,
        rotation_error_clamp=0.1,
        use_svd=False,
    ):
        """
        Initializes a set of IK solver options.

        Parameters
        ----------
            max_iterations : int
                Maximum number of iterations per chain and per solve.
            stall_threshold : float
                If every joint delta of an iteration is below this value, the chain is considered stalled.
                Set to 0 to disable stall detection.
            damping_factor : float
                Damping value for the damped least squares pseudo-inverse.
            divergence_threshold : float
                How much the total error may grow beyond the best error seen before the chain is considered diverged.
            rest_pose_factor : float
                Weight of the nullspace term pulling joints towards their rest pose.
            translation_converge_threshold : float
                Translation error below which a constraint is converged.
            rotation_converge_threshold : float
                Rotation error below which a constraint is converged.
            translation_factor : float
                Relative weight of translation errors.
            rotation_factor : float
                Relative weight of rotation errors.
            translation_step : float
                Perturbation used to compute Jacobian columns of translational degrees of freedom.
            rotation_step : float
                Perturbation, in radians, used to compute Jacobian columns of rotational degrees of freedom.
            translation_error_clamp : float
                Maximum magnitude of the translation error of a single constraint per iteration.
            rotation_error_clamp : float
                Maximum magnitude of the rotation error of a single constraint per iteration.
            use_svd : bool
                If True, uses an SVD based pseudo-inverse instead of damped least squares.
        """
        self.max_iterations = max_iterations
        self.stall_threshold = stall_threshold
        self.damping_factor = damping_factor
        self.divergence_threshold = divergence_threshold
        self.rest_pose_factor = rest_pose_factor
        self.translation_converge_threshold = translation_converge_threshold
        self.rotation_converge_threshold = rotation_converge_threshold
        self.translation_factor = translation_factor
        self.rotation_factor = rotation_factor
        self.translation_step = translation_step
        self.rotation_step = rotation_step
        self.translation_error_clamp = translation_error_clamp
        self.rotation_error_clamp = rotation_error_clamp
        self.use_svd = use_svd


class Solver:
    """
    IK solver for a graph of links and joints with closures and goals.

    The graph is split into independent chains of joints connected by closures, which
    are each solved with a `pyroboik.ik.chain_solver.ChainSolver`. Joints that are not
    part of any chain are snapped directly to their targets.
    """

    def __init__(self, roots, options=None):
        """
        Creates an instance of an IK solver.

        Parameters
        ----------
            roots : `pyroboik.core.frame.Frame` or list[`pyroboik.core.frame.Frame`]
                The frames of the graph to solve. Other roots connected through closures are found automatically.
            options : `SolverOptions`, optional
                The options to use for solving. If not specified, default options are used.
        """
        if not isinstance(roots, (list, tuple)):
            roots = [roots]

        self.roots = list(roots)
        self.options = options if options is not None else SolverOptions()
        self.matrix_pool = MatrixPool()

        self.chains = []
        self.free_joints = []
        self.solvers = []
        self.update_structure()

    def update_structure(self):
        """Recomputes the chains of the graph. Must be called after any change to the graph structure."""
        self.chains, self.free_joints = partition_chains(self.roots)
        self.solvers = [ChainSolver(chain) for chain in self.chains]

    def solve(self, verbose=False):
        """
        Solves all chains of the graph.

        Parameters
        ----------
            verbose : bool, optional
                If True, prints additional information to the console.

        Returns
        -------
            list[`pyroboik.ik.chain_solver.SolveStatus`]
                The outcome of each chain, in the order of `self.chains`.
        """
        if len(self.solvers) == 0 and len(self.free_joints) == 0:
            warnings.warn("Solver: There are no joints to solve.")

        for joint in self.free_joints:
            if joint.target_set:
                for dof in joint.dof:
                    joint.set_dof_value(dof, joint.dof_target[dof])
                joint.update_matrix_world()

        results = []
        for i, solver in enumerate(self.solvers):
            solver.options = copy.copy(self.options)
            status = solver.solve(matrix_pool=self.matrix_pool, verbose=verbose)
            if verbose:
                print(f"Chain {i}: {status.name}")
            results.append(status)

        return results
