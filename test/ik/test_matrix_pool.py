import numpy as np

from pyroboik.ik.matrix_pool import MatrixPool


def test_get_matrices():
    pool = MatrixPool()
    a = pool.get(3, 2)
    b = pool.get(3, 2)
    c = pool.get(2, 2)

    assert a.shape == (3, 2)
    assert c.shape == (2, 2)
    assert a is not b
    assert pool.num_allocated() == 3


def test_release_reuses_matrices():
    pool = MatrixPool()
    a = pool.get(3, 2)
    a.fill(1.0)

    pool.release_all()
    b = pool.get(3, 2)
    assert b is a
    np.testing.assert_array_equal(b, np.zeros((3, 2)))
    assert pool.num_allocated() == 1
