""" Core pyroboik module.

This module contains the kinematic graph representation used by the IK solver:
frames, links, joints with up to six degrees of freedom, and goals.
Transforms are represented with Pinocchio's SE3 and quaternion types.
"""
