""" Dense linear algebra utilities for the IK solver. """

import numpy as np

# Pivots and singular values below these are treated as zero.
PIVOT_EPSILON = 1e-14
SINGULAR_VALUE_EPSILON = 1e-10


def _output(out, shape):
    if out is None:
        return np.zeros(shape)
    if out.shape != shape:
        raise ValueError(f"Output matrix must have shape {shape}, got {out.shape}.")
    return out


def create(rows, cols):
    """Returns a new zeroed matrix."""
    return np.zeros((rows, cols))


def copy(source, out=None):
    out = _output(out, source.shape)
    out[:] = source
    return out


def identity(size, out=None):
    out = _output(out, (size, size))
    out.fill(0.0)
    np.fill_diagonal(out, 1.0)
    return out


def transpose(a, out=None):
    out = _output(out, (a.shape[1], a.shape[0]))
    out[:] = a.T
    return out


def multiply(a, b, out=None):
    """
    Multiplies two matrices.

    Parameters
    ----------
        a : array-like
            An m x n matrix.
        b : array-like
            An n x k matrix.
        out : array-like, optional
            An m x k matrix to write the result into. Must not be `a` or `b`.

    Returns
    -------
        array-like
            The m x k product.
    """
    if out is not None and (out is a or out is b):
        raise ValueError("Matrix: Cannot multiply to a matrix in place.")
    out = _output(out, (a.shape[0], b.shape[1]))
    np.matmul(a, b, out=out)
    return out


def add(a, b, out=None):
    out = _output(out, a.shape)
    np.add(a, b, out=out)
    return out


def subtract(a, b, out=None):
    out = _output(out, a.shape)
    np.subtract(a, b, out=out)
    return out


def scale(a, scalar, out=None):
    out = _output(out, a.shape)
    np.multiply(a, scalar, out=out)
    return out


def magnitude(a):
    return float(np.sqrt(np.sum(np.square(a))))


def gauss_jordan_solve(a, b, out=None):
    """
    Solves the linear system A * x = B using Gauss-Jordan elimination with partial pivoting.

    Parameters
    ----------
        a : array-like
            The n x n coefficient matrix.
        b : array-like
            The n x k right hand side.
        out : array-like, optional
            An n x k matrix to write the solution into.

    Returns
    -------
        array-like
            The n x k solution.

    Raises
    ------
        numpy.linalg.LinAlgError
            If the coefficient matrix is singular.
    """
    n = a.shape[0]
    if a.shape != (n, n):
        raise ValueError("Matrix: Coefficient matrix must be square.")
    if b.shape[0] != n:
        raise ValueError("Matrix: Right hand side must have as many rows as the coefficient matrix.")

    augmented = np.hstack([np.array(a, dtype=float), np.array(b, dtype=float)])
    for col in range(n):
        pivot_row = col + int(np.argmax(np.abs(augmented[col:, col])))
        if abs(augmented[pivot_row, col]) < PIVOT_EPSILON:
            raise np.linalg.LinAlgError("Matrix is singular.")

        if pivot_row != col:
            augmented[[col, pivot_row]] = augmented[[pivot_row, col]]

        augmented[col] /= augmented[col, col]
        for row in range(n):
            if row != col:
                augmented[row] -= augmented[row, col] * augmented[col]

    return copy(augmented[:, n:], out=out)


def invert(a, out=None):
    """Inverts a square matrix with Gauss-Jordan elimination. Raises `numpy.linalg.LinAlgError` if singular."""
    return gauss_jordan_solve(a, np.eye(a.shape[0]), out=out)


def svd(a):
    """
    Computes the thin singular value decomposition A = U * diag(S) * V^T.

    Parameters
    ----------
        a : array-like
            The m x n matrix to decompose.

    Returns
    -------
        tuple(array-like, array-like, array-like)
            The m x k matrix U, the k singular values S, and the n x k matrix V, where k = min(m, n).

    Raises
    ------
        numpy.linalg.LinAlgError
            If the decomposition does not converge.
    """
    u, s, vt = np.linalg.svd(a, full_matrices=False)
    return u, s, vt.T


def _scratch(matrix_pool, rows, cols):
    if matrix_pool is None:
        return np.zeros((rows, cols))
    return matrix_pool.get(rows, cols)


def svd_pseudo_inverse(a, tolerance=SINGULAR_VALUE_EPSILON, out=None, matrix_pool=None):
    """
    Computes the Moore-Penrose pseudo-inverse of a matrix from its SVD.

    Singular values below `tolerance` are treated as zero rather than inverted.

    Parameters
    ----------
        a : array-like
            The m x n matrix.
        tolerance : float, optional
            The threshold below which singular values are zeroed.
        out : array-like, optional
            An n x m matrix to write the result into.
        matrix_pool : `pyroboik.ik.matrix_pool.MatrixPool`, optional
            If set, intermediate matrices are taken from this pool.

    Returns
    -------
        array-like
            The n x m pseudo-inverse.
    """
    u, s, v = svd(a)
    s_inv = np.zeros_like(s)
    nonzero = s > tolerance
    s_inv[nonzero] = 1.0 / s[nonzero]

    v_scaled = _scratch(matrix_pool, v.shape[0], v.shape[1])
    np.multiply(v, s_inv, out=v_scaled)
    u_t = transpose(u, out=_scratch(matrix_pool, u.shape[1], u.shape[0]))
    return multiply(v_scaled, u_t, out=out)


def damped_pseudo_inverse(a, damping, out=None, matrix_pool=None):
    """
    Computes the damped least squares pseudo-inverse J^T * (J * J^T + damping^2 * I)^-1.

    Parameters
    ----------
        a : array-like
            The m x n matrix J.
        damping : float
            The damping factor.
        out : array-like, optional
            An n x m matrix to write the result into.
        matrix_pool : `pyroboik.ik.matrix_pool.MatrixPool`, optional
            If set, intermediate matrices are taken from this pool.

    Returns
    -------
        array-like
            The n x m damped pseudo-inverse.
    """
    rows, cols = a.shape
    a_t = transpose(a, out=_scratch(matrix_pool, cols, rows))
    jjt = multiply(a, a_t, out=_scratch(matrix_pool, rows, rows))

    damping_matrix = identity(rows, out=_scratch(matrix_pool, rows, rows))
    scale(damping_matrix, damping**2, out=damping_matrix)
    add(jjt, damping_matrix, out=jjt)

    jjt_inv = invert(jjt, out=_scratch(matrix_pool, rows, rows))
    return multiply(a_t, jjt_inv, out=out)
