""" Utilities for splitting a kinematic graph into independently solvable chains. """


def get_topmost_parent(frame):
    """Returns the root of the tree containing a frame, which is the frame itself if it has no parent."""
    root = frame
    while root.parent is not None:
        root = root.parent
    return root


def find_roots(frames):
    """
    Finds the roots of every tree connected to a set of frames, following closures.

    Parameters
    ----------
        frames : list[`pyroboik.core.frame.Frame`]
            The frames to start from. These need not be roots themselves.

    Returns
    -------
        list[`pyroboik.core.frame.Frame`]
            The unique roots of all trees that are connected through parent relationships or closure joints.
    """
    potential_roots = [get_topmost_parent(f) for f in frames]
    roots = []
    visited = set()

    def visit(frame):
        if id(frame) in visited:
            return True
        visited.add(id(frame))

        # Closures connect trees that are not reachable through children.
        if frame.is_link:
            connections = frame.closure_joints
        elif frame.is_joint and frame.is_closure:
            connections = [frame.child]
        else:
            connections = []

        for connection in connections:
            root = get_topmost_parent(connection)
            if id(root) not in visited:
                potential_roots.append(root)
        return False

    i = 0
    while i < len(potential_roots):
        frame = potential_roots[i]
        i += 1
        if id(frame) in visited:
            continue

        roots.append(frame)
        frame.traverse(visit)

    return roots


def get_joint_path(frame):
    """
    Returns the joints on the path from a frame up to its root.

    Parameters
    ----------
        frame : `pyroboik.core.frame.Frame`
            The frame to start from, included if it is a joint.

    Returns
    -------
        list[`pyroboik.core.joint.Joint`]
            The joints ordered from the frame towards the root.
    """
    path = []
    curr = frame
    while curr is not None:
        if curr.is_joint:
            path.append(curr)
        curr = curr.parent
    return path


def partition_chains(frames):
    """
    Splits the joints of a kinematic graph into groups that can be solved independently.

    Every closure joint, including goals, creates a set of all joints between it and its
    root, and between its closure target and that target's root. Sets that share any
    joint are merged. Joints with degrees of freedom that are not part of any set are
    unconstrained by closures.

    Parameters
    ----------
        frames : list[`pyroboik.core.frame.Frame`]
            The frames of the graph. Roots are found automatically.

    Returns
    -------
        tuple(list[list[`pyroboik.core.joint.Joint`]], list[`pyroboik.core.joint.Joint`])
            The list of joint chains, and the list of free joints.
    """
    roots = find_roots(frames)

    # Ordered sets of joints, stored as dictionary keys.
    working_sets = []

    def collect_closures(frame):
        if frame.is_joint and frame.is_closure:
            chain = dict.fromkeys(get_joint_path(frame))
            chain.update(dict.fromkeys(get_joint_path(frame.child)))
            working_sets.append(chain)
        return False

    for root in roots:
        root.traverse(collect_closures)

    # Merge sets until they are all disjoint.
    chains = []
    while working_sets:
        current = working_sets.pop(0)
        merged = True
        while merged:
            merged = False
            remaining = []
            for other in working_sets:
                if current.keys().isdisjoint(other.keys()):
                    remaining.append(other)
                else:
                    current.update(other)
                    merged = True
            working_sets = remaining
        chains.append(list(current))

    chain_joints = set()
    for chain in chains:
        chain_joints.update(id(j) for j in chain)

    free_joints = []

    def collect_free_joints(frame):
        if frame.is_joint and len(frame.dof) > 0 and id(frame) not in chain_joints:
            free_joints.append(frame)
        return False

    for root in roots:
        root.traverse(collect_free_joints)

    return chains, free_joints
