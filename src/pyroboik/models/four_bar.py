""" Utilities to build an example planar four-bar linkage. """

import numpy as np

from ..core.joint import DOF, Joint
from ..core.link import Link
from ..core.utils import HALF_PI


def get_four_bar_angles(
    crank_angle, crank_length, coupler_length, ground_length, rocker_length
):
    """
    Solves the assembly of a four-bar linkage for a given crank angle.

    The crank pivots at the origin and the rocker pivots at (ground_length, 0, 0).
    Of the two assemblies, the one with the coupler above the line between the
    crank tip and the rocker pivot is returned.

    Parameters
    ----------
        crank_angle : float
            The angle of the crank from the X axis, in radians.
        crank_length : float
            The length of the crank.
        coupler_length : float
            The length of the coupler.
        ground_length : float
            The distance between the crank and rocker pivots.
        rocker_length : float
            The length of the rocker.

    Returns
    -------
        tuple(float, float, float)
            The world angles of the crank, coupler, and rocker.
    """
    crank_tip = crank_length * np.array([np.cos(crank_angle), np.sin(crank_angle)])
    rocker_pivot = np.array([ground_length, 0.0])

    diff = rocker_pivot - crank_tip
    distance = np.linalg.norm(diff)
    if distance > coupler_length + rocker_length or distance < abs(
        coupler_length - rocker_length
    ):
        raise ValueError(f"Four-bar linkage cannot be assembled at angle {crank_angle}.")

    # Intersect the circles around the crank tip and rocker pivot.
    along = (coupler_length**2 - rocker_length**2 + distance**2) / (2.0 * distance)
    height = np.sqrt(max(coupler_length**2 - along**2, 0.0))
    direction = diff / distance
    normal = np.array([-direction[1], direction[0]])
    if normal[1] < 0.0:
        normal = -normal
    joint_point = crank_tip + along * direction + height * normal

    coupler_vec = joint_point - crank_tip
    rocker_vec = joint_point - rocker_pivot
    return (
        crank_angle,
        float(np.arctan2(coupler_vec[1], coupler_vec[0])),
        float(np.arctan2(rocker_vec[1], rocker_vec[0])),
    )


def create_four_bar(
    crank_angle=HALF_PI,
    crank_length=1.0,
    coupler_length=3.0,
    ground_length=2.0,
    rocker_length=3.0,
):
    """
    Builds a planar four-bar linkage, assembled at the given crank angle.

    The ground link holds two revolute pivots. The crank and coupler form one branch,
    and the rocker forms the other. The loop is closed by a closure joint at the end
    of the coupler onto the link at the end of the rocker.

    Parameters
    ----------
        crank_angle : float, optional
            The initial angle of the crank, in radians.
        crank_length : float, optional
            The length of the crank.
        coupler_length : float, optional
            The length of the coupler.
        ground_length : float, optional
            The distance between the crank and rocker pivots.
        rocker_length : float, optional
            The length of the rocker.

    Returns
    -------
        tuple(`pyroboik.core.link.Link`, dict, `pyroboik.core.joint.Joint`)
            The ground link, a dictionary of joints keyed by "crank", "coupler", "closure", and "rocker",
            and the closure joint.
    """
    crank, coupler, rocker = get_four_bar_angles(
        crank_angle, crank_length, coupler_length, ground_length, rocker_length
    )

    ground = Link("ground")

    crank_joint = Joint("crank")
    crank_joint.set_dof(DOF.EZ)
    crank_joint.set_dof_values(crank)
    ground.add_child(crank_joint)
    crank_link = Link("crank_link")
    crank_joint.add_child(crank_link)

    coupler_joint = Joint("coupler")
    coupler_joint.set_dof(DOF.EZ)
    coupler_joint.set_position(crank_length, 0.0, 0.0)
    coupler_joint.set_dof_values(coupler - crank)
    crank_link.add_child(coupler_joint)
    coupler_link = Link("coupler_link")
    coupler_joint.add_child(coupler_link)

    rocker_joint = Joint("rocker")
    rocker_joint.set_dof(DOF.EZ)
    rocker_joint.set_position(ground_length, 0.0, 0.0)
    rocker_joint.set_dof_values(rocker)
    ground.add_child(rocker_joint)
    rocker_link = Link("rocker_link")
    rocker_joint.add_child(rocker_link)

    rocker_tip = Joint("rocker_tip")
    rocker_tip.set_position(rocker_length, 0.0, 0.0)
    rocker_link.add_child(rocker_tip)
    rocker_tip_link = Link("rocker_tip_link")
    rocker_tip.add_child(rocker_tip_link)

    closure_joint = Joint("closure")
    closure_joint.set_dof(DOF.EZ)
    closure_joint.set_position(coupler_length, 0.0, 0.0)
    closure_joint.set_dof_values(rocker - coupler)
    coupler_link.add_child(closure_joint)
    closure_joint.make_closure(rocker_tip_link)

    ground.update_matrix_world(True)
    joints = {
        "crank": crank_joint,
        "coupler": coupler_joint,
        "closure": closure_joint,
        "rocker": rocker_joint,
    }
    return ground, joints, closure_joint
