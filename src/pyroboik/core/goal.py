from .joint import Joint, DOF, ROTATION_DOF


class Goal(Joint):
    """
    A target pose for a link.

    A goal is a joint whose own pose is the target, connected to the link that should
    reach it with `make_closure`. Its degrees of freedom select which components of the
    pose are constrained. Rotation is constrained either fully or not at all.
    """

    is_goal = True

    def set_dof(self, *dofs):
        rotation_count = sum(1 for d in ROTATION_DOF if d in dofs)
        if rotation_count not in (0, 3):
            raise ValueError(
                "Goal: Rotation goals must constrain either all or none of EX, EY, and EZ."
            )
        super().set_dof(*dofs)

    def set_goal_dof(self, *dofs):
        """Sets the degrees of freedom that are constrained by this goal."""
        self.set_dof(*dofs)

    def set_free_dof(self, *dofs):
        """Sets the degrees of freedom that are not constrained by this goal."""
        self.set_dof(*[d for d in DOF if d not in dofs])

    def add_child(self, child):
        raise ValueError("Goal: Goals cannot have children, use make_closure.")

    def attach_child(self, child):
        raise ValueError("Goal: Goals cannot have children, use make_closure.")
