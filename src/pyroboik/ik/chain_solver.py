""" Damped least squares IK solver for a single group of interdependent joints. """

from enum import IntEnum

import numpy as np

from . import matrix
from .matrix_pool import MatrixPool
from .nullspace_components import (
    get_free_dof,
    project_to_nullspace,
    rest_pose_nullspace_component,
)
from ..core.utils import (
    align_quaternion,
    get_transform_position,
    get_transform_quaternion,
    quaternion_angle,
)

# Row layout of a closure constraint: position (x, y, z) then quaternion (x, y, z, w).
CLOSURE_COMPONENTS = list(range(7))
QUATERNION_COMPONENTS = [3, 4, 5, 6]


class SolveStatus(IntEnum):
    """Outcome of solving a chain."""

    CONVERGED = 0
    STALLED = 1
    DIVERGED = 2
    TIMEOUT = 3


class ConstraintError:
    """The current error of one constraint in a chain: a closure, a goal, or a joint target."""

    def __init__(self, joint, is_target=False):
        self.joint = joint
        self.is_target = is_target

        # Row components (closures) or degrees of freedom (targets) that make up this constraint.
        self.components = []
        self.error = None

        self.translation_error = 0.0
        self.rotation_error = 0.0
        self.is_converged = False

        # Reference world poses used to build Jacobian columns for closures.
        self.joint_position = None
        self.joint_quaternion = None
        self.link_position = None
        self.link_quaternion = None

    @property
    def row_count(self):
        return len(self.components)


class ChainSolver:
    """
    Iteratively solves the closures, goals, and joint targets of a group of joints.

    Each iteration linearizes the constraint error with respect to the free degrees of
    freedom and takes a damped least squares (or SVD pseudo-inverse) step. Degrees of
    freedom that hit a limit are locked until the error would pull them back off the limit.

    The solver options are read from `self.options`, which is set by the owning
    `pyroboik.ik.solver.Solver` before every solve.
    """

    def __init__(self, chain, options=None):
        """
        Creates a chain solver.

        Parameters
        ----------
            chain : list[`pyroboik.core.joint.Joint`]
                The joints in this group, including closure joints and goals.
            options : `pyroboik.ik.solver.SolverOptions`, optional
                The options to solve with. Must be set before calling `solve`.
        """
        self.chain = list(chain)
        self.options = options

        # Closure joints in the chain.
        self.closures = []

        # Maps each joint to the closures whose joint side it moves.
        self.affected_closures = {}

        # Maps each joint to the closures whose link side it moves.
        self.affected_connected_closures = {}

        # Maps each joint to a boolean array of degrees of freedom locked at a limit.
        self.locked_dof = {}

        self.iterations = 0

        self.init()

    def init(self):
        """Computes which joints affect which closures. Must be called if the chain structure changes."""
        self.closures = [j for j in self.chain if j.is_closure]
        self.affected_closures = {j: set() for j in self.chain}
        self.affected_connected_closures = {j: set() for j in self.chain}
        self.locked_dof = {j: np.zeros(6, dtype=bool) for j in self.chain}

        for closure in self.closures:
            curr = closure
            while curr is not None:
                if curr.is_joint and curr in self.affected_closures:
                    self.affected_closures[curr].add(closure)
                curr = curr.parent

            curr = closure.child
            while curr is not None:
                if curr.is_joint and curr in self.affected_connected_closures:
                    self.affected_connected_closures[curr].add(closure)
                curr = curr.parent

    def get_free_joints(self):
        """Returns the joints whose degrees of freedom are solved for."""
        return [j for j in self.chain if not j.is_goal and len(j.dof) > 0]

    def solve(self, matrix_pool=None, verbose=False):
        """
        Runs the solver until the chain converges, stalls, diverges, or runs out of iterations.

        Parameters
        ----------
            matrix_pool : `pyroboik.ik.matrix_pool.MatrixPool`, optional
                The pool to take scratch matrices from. If None, a new pool is created.
            verbose : bool, optional
                If True, prints additional information to the console.

        Returns
        -------
            `pyroboik.ik.chain_solver.SolveStatus`
                The outcome of the solve.
        """
        options = self.options
        if options is None:
            raise ValueError("ChainSolver: Options must be set before solving.")
        if matrix_pool is None:
            matrix_pool = MatrixPool()

        chain = self.chain
        for locked in self.locked_dof.values():
            locked.fill(False)

        for joint in chain:
            if joint.target_set or joint.rest_pose_set:
                joint.try_minimize_euler_angles()

        snapshot = self._save_dof_values()
        best_error = np.inf
        self.iterations = 0

        while True:
            matrix_pool.release_all()
            for joint in chain:
                joint.update_matrix_world()

            constraints = self.get_unconverged_constraints()
            error_rows = sum(c.row_count for c in constraints)
            total_error = sum(self._get_clamped_error(c) for c in constraints)

            if error_rows == 0:
                status = SolveStatus.CONVERGED
                break

            if total_error > best_error + options.divergence_threshold:
                self._restore_dof_values(snapshot)
                status = SolveStatus.DIVERGED
                break

            if total_error < best_error:
                best_error = total_error
                snapshot = self._save_dof_values()

            if self.iterations > options.max_iterations:
                status = SolveStatus.TIMEOUT
                break

            free_joints = self.get_free_joints()
            error_vector = matrix_pool.get(error_rows, 1)
            self.fill_error_vector(constraints, error_vector)

            # Build columns for every degree of freedom so locked ones can be released.
            all_columns = [(j, d) for j in free_joints for d in j.dof]
            full_jacobian = matrix_pool.get(error_rows, len(all_columns))
            self.fill_jacobian(constraints, all_columns, full_jacobian)
            self.release_locked_dof(all_columns, full_jacobian, error_vector)

            active = [
                i for i, (j, d) in enumerate(all_columns) if not self.locked_dof[j][d]
            ]
            free_dof = len(active)
            jacobian = matrix_pool.get(error_rows, free_dof)
            jacobian[:] = full_jacobian[:, active]

            delta_theta = matrix_pool.get(free_dof, 1)
            if free_dof > 0:
                pseudo_inverse = matrix_pool.get(free_dof, error_rows)
                self._compute_pseudo_inverse(
                    jacobian, pseudo_inverse, matrix_pool, verbose
                )
                matrix.multiply(pseudo_inverse, error_vector, out=delta_theta)

                if options.rest_pose_factor != 0.0:
                    rest_pose = rest_pose_nullspace_component(
                        free_joints, self.locked_dof
                    )
                    projected = project_to_nullspace(jacobian, pseudo_inverse, rest_pose)
                    delta_theta[:, 0] += options.rest_pose_factor * projected

            if options.stall_threshold > 0.0 and np.all(
                np.abs(delta_theta) < options.stall_threshold
            ):
                status = SolveStatus.STALLED
                break

            self.apply_joint_angles(free_joints, delta_theta[:, 0])
            self.iterations += 1

        matrix_pool.release_all()
        if verbose:
            print(f"Chain finished with status {status.name} after {self.iterations} iterations.")
        return status

    def get_unconverged_constraints(self):
        """
        Computes the error of every constraint in the chain.

        Returns
        -------
            list[`pyroboik.ik.chain_solver.ConstraintError`]
                The constraints that have not yet converged, in chain order.
        """
        constraints = []
        for joint in self.chain:
            if joint.is_closure:
                constraint = self.get_closure_error(joint)
                if not constraint.is_converged:
                    constraints.append(constraint)

            if joint.target_set and not joint.is_goal:
                constraint = self.get_target_error(joint)
                if not constraint.is_converged and constraint.row_count > 0:
                    constraints.append(constraint)
        return constraints

    def get_closure_error(self, joint):
        """
        Computes the error between a closure joint, or goal, and its closure target link.

        Parameters
        ----------
            joint : `pyroboik.core.joint.Joint`
                The closure joint.

        Returns
        -------
            `pyroboik.ik.chain_solver.ConstraintError`
                The closure error.
        """
        options = self.options
        constraint = ConstraintError(joint)

        joint.update_matrix_world()
        joint.child.update_matrix_world()
        constraint.joint_position = get_transform_position(joint.matrix_world)
        constraint.joint_quaternion = get_transform_quaternion(joint.matrix_world)
        constraint.link_position = get_transform_position(joint.child.matrix_world)
        constraint.link_quaternion = align_quaternion(
            get_transform_quaternion(joint.child.matrix_world),
            constraint.joint_quaternion,
        )

        pos_error = constraint.joint_position - constraint.link_position
        quat_error = constraint.joint_quaternion - constraint.link_quaternion

        if joint.is_goal:
            pos_error = pos_error * joint.dof_flags[:3]
            components = [d for d in joint.dof if d < 3]
            if joint.rotation_dof_count == 3:
                components += QUATERNION_COMPONENTS
            else:
                quat_error = np.zeros(4)
        else:
            components = CLOSURE_COMPONENTS

        constraint.translation_error = float(np.linalg.norm(pos_error))
        constraint.rotation_error = float(np.linalg.norm(quat_error))
        constraint.is_converged = (
            constraint.translation_error < options.translation_converge_threshold
            and constraint.rotation_error < options.rotation_converge_threshold
        )

        pos_error = self._clamp_error(pos_error, options.translation_error_clamp)
        quat_error = self._clamp_error(quat_error, options.rotation_error_clamp)
        error = np.concatenate(
            [pos_error * options.translation_factor, quat_error * options.rotation_factor]
        )

        constraint.components = list(components)
        constraint.error = error[constraint.components]
        return constraint

    def get_target_error(self, joint):
        """
        Computes the error between the degree of freedom values of a joint and its target values.

        Parameters
        ----------
            joint : `pyroboik.core.joint.Joint`
                The joint with a target set.

        Returns
        -------
            `pyroboik.ik.chain_solver.ConstraintError`
                The target error, with one row per unlocked degree of freedom.
        """
        options = self.options
        constraint = ConstraintError(joint, is_target=True)

        flags = joint.dof_flags
        delta = (joint.dof_target - joint.dof_values) * flags
        constraint.translation_error = float(np.linalg.norm(delta[:3]))
        if joint.rotation_dof_count == 3:
            constraint.rotation_error = quaternion_angle(
                joint.get_dof_quaternion(), joint.get_target_quaternion()
            )
        else:
            constraint.rotation_error = float(np.sum(np.abs(delta[3:])))

        constraint.is_converged = (
            constraint.translation_error < options.translation_converge_threshold
            and constraint.rotation_error < options.rotation_converge_threshold
        )

        error = np.concatenate(
            [
                self._clamp_error(delta[:3], options.translation_error_clamp)
                * options.translation_factor,
                self._clamp_error(delta[3:], options.rotation_error_clamp)
                * options.rotation_factor,
            ]
        )

        constraint.components = get_free_dof(joint, self.locked_dof[joint])
        constraint.error = error[constraint.components]
        return constraint

    def fill_error_vector(self, constraints, error_vector):
        """Writes the stacked error of all constraints into an error_rows x 1 matrix."""
        row = 0
        for constraint in constraints:
            error_vector[row : row + constraint.row_count, 0] = constraint.error
            row += constraint.row_count

    def fill_jacobian(self, constraints, columns, jacobian):
        """
        Fills in the Jacobian of the constraint errors with respect to a set of degrees of freedom.

        Each column is computed by perturbing one degree of freedom with
        `Joint.get_delta_world_matrix` and measuring how the closure ends move.

        Parameters
        ----------
            constraints : list[`pyroboik.ik.chain_solver.ConstraintError`]
                The constraints making up the rows.
            columns : list[tuple(`pyroboik.core.joint.Joint`, `pyroboik.core.joint.DOF`)]
                The degrees of freedom making up the columns.
            jacobian : array-like
                The error_rows x len(columns) matrix to write into.
        """
        options = self.options
        for col, (joint, dof) in enumerate(columns):
            relevant = self.affected_closures.get(joint, set())
            relevant_connected = self.affected_connected_closures.get(joint, set())

            step = options.translation_step if dof < 3 else options.rotation_step
            transform = None
            sign = 1.0

            row = 0
            for constraint in constraints:
                target = constraint.joint
                if constraint.is_target:
                    if target is joint and dof in constraint.components:
                        factor = (
                            options.translation_factor
                            if dof < 3
                            else options.rotation_factor
                        )
                        jacobian[row + constraint.components.index(dof), col] = factor

                elif target in relevant or target in relevant_connected:
                    if transform is None:
                        delta_world, inverted = joint.get_delta_world_matrix(dof, step)
                        transform = delta_world * joint.matrix_world.inverse()
                        sign = -1.0 if inverted else 1.0

                    diff = np.zeros(7)
                    if target in relevant_connected:
                        moved = transform * target.child.matrix_world
                        diff[:3] += get_transform_position(moved) - constraint.link_position
                        diff[3:] += (
                            align_quaternion(
                                get_transform_quaternion(moved),
                                constraint.link_quaternion,
                            )
                            - constraint.link_quaternion
                        )

                    if target in relevant:
                        moved = transform * target.matrix_world
                        diff[:3] -= get_transform_position(moved) - constraint.joint_position
                        diff[3:] -= (
                            align_quaternion(
                                get_transform_quaternion(moved),
                                constraint.joint_quaternion,
                            )
                            - constraint.joint_quaternion
                        )

                    diff[:3] *= options.translation_factor
                    diff[3:] *= options.rotation_factor
                    jacobian[row : row + constraint.row_count, col] = (
                        sign * diff[constraint.components] / step
                    )

                row += constraint.row_count

    def apply_joint_angles(self, free_joints, delta_theta):
        """
        Adds the solved deltas to the unlocked degrees of freedom of the free joints.

        Degrees of freedom that end up on a limit are locked.

        Parameters
        ----------
            free_joints : list[`pyroboik.core.joint.Joint`]
                The joints making up the columns of the Jacobian.
            delta_theta : array-like
                One delta per unlocked degree of freedom.

        Returns
        -------
            bool
                True if any degree of freedom was locked.
        """
        locked_any = False
        index = 0
        for joint in free_joints:
            locked = self.locked_dof[joint]
            for dof in get_free_dof(joint, locked):
                value = joint.get_dof_value(dof)
                if joint.set_dof_value(dof, value + delta_theta[index]):
                    locked[dof] = True
                    locked_any = True
                index += 1

        if index != len(delta_theta):
            raise ValueError(
                f"ChainSolver: Expected {index} joint deltas, got {len(delta_theta)}."
            )
        return locked_any

    def release_locked_dof(self, columns, jacobian, error_vector):
        """
        Unlocks degrees of freedom whose descent direction points back into their limits.

        Parameters
        ----------
            columns : list[tuple(`pyroboik.core.joint.Joint`, `pyroboik.core.joint.DOF`)]
                The degrees of freedom matching the Jacobian columns.
            jacobian : array-like
                The error_rows x len(columns) Jacobian.
            error_vector : array-like
                The error_rows x 1 error vector.
        """
        gradient = jacobian.T @ error_vector[:, 0]
        for col, (joint, dof) in enumerate(columns):
            if not self.locked_dof[joint][dof]:
                continue

            value = joint.dof_values[dof]
            if (gradient[col] > 0.0 and value < joint.max_dof_limit[dof]) or (
                gradient[col] < 0.0 and value > joint.min_dof_limit[dof]
            ):
                self.locked_dof[joint][dof] = False

    def _compute_pseudo_inverse(self, jacobian, out, matrix_pool, verbose):
        options = self.options
        if options.use_svd:
            try:
                matrix.svd_pseudo_inverse(jacobian, out=out, matrix_pool=matrix_pool)
                return
            except np.linalg.LinAlgError:
                if verbose:
                    print("SVD did not converge, using damped least squares.")

        matrix.damped_pseudo_inverse(
            jacobian, options.damping_factor, out=out, matrix_pool=matrix_pool
        )

    def _clamp_error(self, error, clamp):
        magnitude = np.linalg.norm(error)
        if magnitude > clamp:
            return error * (clamp / magnitude)
        return error

    def _get_clamped_error(self, constraint):
        options = self.options
        return (
            min(constraint.translation_error, options.translation_error_clamp)
            * options.translation_factor
            + min(constraint.rotation_error, options.rotation_error_clamp)
            * options.rotation_factor
        )

    def _save_dof_values(self):
        return {joint: joint.dof_values.copy() for joint in self.chain}

    def _restore_dof_values(self, snapshot):
        for joint, values in snapshot.items():
            joint.dof_values[:] = values
            joint.set_matrix_dof_needs_update()
            joint.update_matrix_world()
