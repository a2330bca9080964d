from .frame import Frame


class Link(Frame):
    """
    A rigid body in the kinematic graph.

    Links are connected to each other through joints, and can additionally be the
    target of closure joints that form kinematic loops.
    """

    is_link = True

    def __init__(self, name=""):
        super().__init__(name)

        # Closure joints whose closure target is this link. Not owned.
        self.closure_joints = []

    def add_child(self, child):
        if not child.is_joint:
            raise ValueError("Link: Added child must be a Joint.")
        super().add_child(child)
