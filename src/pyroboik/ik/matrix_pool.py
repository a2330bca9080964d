""" A reusable pool of scratch matrices for the IK solver. """

import numpy as np


class MatrixPool:
    """
    Hands out scratch matrices of a requested shape, reusing them after `release_all`.

    Matrices returned by `get` are zeroed and stay valid until the next call to
    `release_all`, after which they may be handed out again. They must not be kept
    beyond that point.
    """

    def __init__(self):
        # Maps (rows, cols) to the list of matrices allocated for that shape.
        self.matrices = {}
        self.indices = {}

    def get(self, rows, cols):
        """
        Gets a zeroed matrix of the given shape.

        Parameters
        ----------
            rows : int
                The number of rows.
            cols : int
                The number of columns.

        Returns
        -------
            array-like
                A rows x cols matrix of zeros.
        """
        shape = (rows, cols)
        matrices = self.matrices.setdefault(shape, [])
        index = self.indices.get(shape, 0)
        if index == len(matrices):
            matrices.append(np.zeros(shape))
        else:
            matrices[index].fill(0.0)

        self.indices[shape] = index + 1
        return matrices[index]

    def release_all(self):
        """Makes every matrix in the pool available again."""
        self.indices.clear()

    def num_allocated(self):
        """Returns the total number of matrices allocated by the pool."""
        return sum(len(m) for m in self.matrices.values())
