""" Library of nullspace components for inverse kinematics. """

import numpy as np


def get_free_dof(joint, locked_dof=None):
    """
    Returns the degrees of freedom of a joint that are not locked.

    Parameters
    ----------
        joint : `pyroboik.core.joint.Joint`
            The joint to check.
        locked_dof : array-like, optional
            A six element boolean array of locked degrees of freedom. If None, none are locked.

    Returns
    -------
        list[`pyroboik.core.joint.DOF`]
            The unlocked degrees of freedom, in the order of `joint.dof`.
    """
    if locked_dof is None:
        return list(joint.dof)
    return [d for d in joint.dof if not locked_dof[d]]


def rest_pose_nullspace_component(joints, locked_dofs=None, gain=1.0):
    """
    Returns a rest pose nullspace component, pulling joints towards their rest pose.

    Joints without a rest pose set contribute zeros.

    Parameters
    ----------
        joints : list[`pyroboik.core.joint.Joint`]
            The joints whose free degrees of freedom make up the columns of the Jacobian.
        locked_dofs : dict, optional
            Maps joints to six element boolean arrays of locked degrees of freedom.
        gain : float, optional
            A gain to modify the relative weight of this term.

    Returns
    -------
        array-like
            An array with one entry per free degree of freedom.
    """
    component = []
    for joint in joints:
        locked = locked_dofs.get(joint) if locked_dofs is not None else None
        for dof in get_free_dof(joint, locked):
            if joint.rest_pose_set:
                component.append(joint.dof_rest_pose[dof] - joint.dof_values[dof])
            else:
                component.append(0.0)
    return gain * np.array(component)


def project_to_nullspace(jacobian, pseudo_inverse, component):
    """
    Projects a joint space component onto the nullspace of a Jacobian.

    This computes (I - J^+ * J) * component as component - J^+ * (J * component),
    which avoids building the square projection matrix.

    Parameters
    ----------
        jacobian : array-like
            The m x n Jacobian.
        pseudo_inverse : array-like
            The n x m pseudo-inverse of the Jacobian.
        component : array-like
            The n element joint space component.

    Returns
    -------
        array-like
            The projected component.
    """
    component = np.asarray(component, dtype=float)
    return component - pseudo_inverse @ (jacobian @ component)
