""" Utilities to build an example planar serial arm. """

from ..core.joint import DOF, Joint
from ..core.link import Link


def create_planar_arm(num_links=2, link_length=1.0):
    """
    Builds a serial arm of revolute joints rotating about the Z axis.

    All joints start at zero, so the arm initially lies along the X axis.

    Parameters
    ----------
        num_links : int, optional
            The number of links, and revolute joints, in the arm.
        link_length : float, optional
            The distance between consecutive joints, and from the last joint to the end effector.

    Returns
    -------
        tuple(`pyroboik.core.link.Link`, list[`pyroboik.core.joint.Joint`], `pyroboik.core.link.Link`)
            The base link, the revolute joints from base to tip, and the end effector link.
    """
    if num_links < 1:
        raise ValueError("Planar arm must have at least one link.")

    base = Link("base")
    joints = []

    parent = base
    for i in range(num_links):
        joint = Joint(f"joint{i + 1}")
        joint.set_dof(DOF.EZ)
        if i > 0:
            joint.set_position(link_length, 0.0, 0.0)
        parent.add_child(joint)

        link = Link(f"link{i + 1}")
        joint.add_child(link)
        joints.append(joint)
        parent = link

    # Fixed joint to place the end effector at the tip of the last link.
    tip = Joint("tip_joint")
    tip.set_position(link_length, 0.0, 0.0)
    parent.add_child(tip)

    effector = Link("effector")
    tip.add_child(effector)

    base.update_matrix_world(True)
    return base, joints, effector
