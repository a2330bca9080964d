""" Scene graph frames with lazily updated world transforms. """

from collections import deque

import numpy as np
import pinocchio

from .utils import (
    euler_to_quaternion,
    get_transform_position,
    get_transform_quaternion,
    pose_to_transform,
    quaternion_squared_distance,
    rotation_matrix_to_quaternion,
)

# Local pose changes smaller than this (squared) do not dirty the matrices.
POSE_CHANGE_TOLERANCE = 1e-10


class Frame:
    """
    A node in the kinematic scene graph.

    A frame stores its pose relative to its parent as a position and a quaternion.
    The local and world transforms are recomputed lazily, only after a pose change
    has marked them as needing an update.
    """

    is_link = False
    is_joint = False
    is_goal = False

    def __init__(self, name=""):
        """
        Creates a frame at the origin of its parent.

        Parameters
        ----------
            name : str, optional
                A name for the frame, used only for identification.
        """
        self.name = name

        self.position = np.zeros(3)
        self.quaternion = np.array([0.0, 0.0, 0.0, 1.0])

        self.matrix = pinocchio.SE3.Identity()
        self.matrix_world = pinocchio.SE3.Identity()

        self.matrix_needs_update = False
        self.matrix_world_needs_update = False

        self.parent = None
        self.children = []

    def __repr__(self):
        return f"{type(self).__name__}(name={self.name!r})"

    def set_position(self, x, y, z):
        """Sets the position of the frame relative to its parent."""
        position = np.array([x, y, z], dtype=float)
        diff = self.position - position
        if np.dot(diff, diff) > POSE_CHANGE_TOLERANCE:
            self.position = position
            self.set_matrix_needs_update()

    def set_euler(self, x, y, z):
        """Sets the orientation of the frame relative to its parent from Euler angles, in radians."""
        self.set_quaternion(*euler_to_quaternion(x, y, z))

    def set_quaternion(self, x, y, z, w):
        """Sets the orientation of the frame relative to its parent from an (x, y, z, w) quaternion."""
        quaternion = np.array([x, y, z, w], dtype=float)
        if quaternion_squared_distance(self.quaternion, quaternion) > POSE_CHANGE_TOLERANCE:
            self.quaternion = quaternion
            self.set_matrix_needs_update()

    def set_world_position(self, x, y, z):
        """Sets the position of the frame such that it ends up at the given world position."""
        position = np.array([x, y, z], dtype=float)
        if self.parent is not None:
            self.parent.update_matrix_world()
            parent_world = self.parent.matrix_world
            position = parent_world.rotation.T @ (position - parent_world.translation)
        self.set_position(*position)

    def set_world_euler(self, x, y, z):
        """Sets the orientation of the frame such that it ends up at the given world Euler angles."""
        self.set_world_quaternion(*euler_to_quaternion(x, y, z))

    def set_world_quaternion(self, x, y, z, w):
        """Sets the orientation of the frame such that it ends up at the given world quaternion."""
        quaternion = np.array([x, y, z, w], dtype=float)
        if self.parent is not None:
            self.parent.update_matrix_world()
            world_rotation = pose_to_transform(np.zeros(3), quaternion).rotation
            local_rotation = self.parent.matrix_world.rotation.T @ world_rotation
            quaternion = rotation_matrix_to_quaternion(local_rotation)
        self.set_quaternion(*quaternion)

    def get_world_position(self):
        """Returns the world position of the frame."""
        self.update_matrix_world()
        return get_transform_position(self.matrix_world)

    def get_world_quaternion(self):
        """Returns the world orientation of the frame as an (x, y, z, w) quaternion."""
        self.update_matrix_world()
        return get_transform_quaternion(self.matrix_world)

    def traverse_parents(self, callback):
        """
        Walks up the ancestors of this frame, starting at its parent.

        Parameters
        ----------
            callback : function
                Called with every ancestor. Returning True stops the walk.
        """
        curr = self.parent
        while curr is not None:
            if callback(curr):
                return
            curr = curr.parent

    def traverse(self, callback):
        """
        Walks this frame and all of its descendants, breadth first.

        Parameters
        ----------
            callback : function
                Called with every frame. Returning True skips the descendants of that frame.
        """
        visited = {id(self)}
        queue = deque([self])
        while queue:
            curr = queue.popleft()
            if callback(curr):
                continue

            for child in curr.children:
                if id(child) not in visited:
                    visited.add(id(child))
                    queue.append(child)

    def find(self, callback):
        """
        Returns the first frame in the traversal of this frame for which `callback` returns True.

        Parameters
        ----------
            callback : function
                The predicate to test frames with.

        Returns
        -------
            `pyroboik.core.frame.Frame` or None
                The matching frame, if one was found.
        """
        result = None

        def check(frame):
            nonlocal result
            if result is not None:
                return True
            if callback(frame):
                result = frame
                return True
            return False

        self.traverse(check)
        return result

    def add_child(self, child):
        """
        Adds a frame as a child of this frame, keeping its local pose.

        Parameters
        ----------
            child : `pyroboik.core.frame.Frame`
                The frame to add. It must not have a parent and must not be an ancestor of this frame.
        """
        if child.parent is not None:
            raise ValueError("Frame: Added child must not already have a parent.")

        if child is self:
            raise ValueError("Frame: Frame cannot be added as a child to itself.")

        def check_ancestor(parent):
            if parent is child:
                raise ValueError(
                    "Frame: Added child is an ancestor of this Frame. Use Joint.make_closure instead."
                )
            return False

        self.traverse_parents(check_ancestor)

        child.parent = self
        self.children.append(child)
        child.set_matrix_world_needs_update()

    def remove_child(self, child):
        """
        Removes a child of this frame, keeping its local pose.

        Parameters
        ----------
            child : `pyroboik.core.frame.Frame`
                The child frame to remove.
        """
        if child.parent is not self:
            raise ValueError("Frame: Child to be removed is not a child of this Frame.")

        self.children.remove(child)
        child.parent = None
        child.set_matrix_world_needs_update()

    def attach_child(self, child):
        """Adds a frame as a child of this frame, keeping its world pose."""
        self.update_matrix_world()
        child.update_matrix_world()

        self.add_child(child)
        child.set_matrix(self.matrix_world.inverse() * child.matrix_world)

    def detach_child(self, child):
        """Removes a child of this frame, keeping its world pose."""
        self.update_matrix_world()
        child.update_matrix_world()

        self.remove_child(child)
        child.set_matrix(child.matrix_world.copy())

    def set_matrix(self, matrix):
        """
        Sets the local transform of this frame directly, updating its position and quaternion.

        Parameters
        ----------
            matrix : `pinocchio.SE3`
                The new transform of the frame relative to its parent.
        """
        self.matrix = matrix
        self.position = get_transform_position(matrix)
        self.quaternion = get_transform_quaternion(matrix)
        self.matrix_needs_update = False
        self.set_matrix_world_needs_update()

    def compute_matrix_world(self):
        if self.parent is not None:
            self.matrix_world = self.parent.matrix_world * self.matrix
        else:
            self.matrix_world = self.matrix.copy()

    def set_matrix_needs_update(self):
        if not self.matrix_needs_update:
            self.matrix_needs_update = True
            self.set_matrix_world_needs_update()

    def set_matrix_world_needs_update(self):
        # A dirty frame implies its descendants are dirty too.
        def mark(frame):
            if frame.matrix_world_needs_update:
                return True
            frame.matrix_world_needs_update = True
            return False

        self.traverse(mark)

    def update_matrix(self):
        """Recomposes the local transform from the position and quaternion, if needed."""
        if self.matrix_needs_update:
            self.matrix = pose_to_transform(self.position, self.quaternion)
            self.matrix_needs_update = False

    def update_matrix_world(self, update_children=False):
        """
        Recomputes the world transform of this frame, if needed.

        Parameters
        ----------
            update_children : bool, optional
                If True, also updates the world transforms of all descendants.
        """
        parent = self.parent
        if self.matrix_world_needs_update:
            if parent is not None and parent.matrix_world_needs_update:
                parent.update_matrix_world(False)

            self.update_matrix()
            self.compute_matrix_world()
            self.matrix_world_needs_update = False

        if update_children:

            def update(frame):
                if frame is not self:
                    frame.update_matrix_world(False)
                return False

            self.traverse(update)
