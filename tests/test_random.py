import numpy as np

import ellfactor as ef


def test_random_unit_vectors():
    rng = np.random.default_rng(0)

    # one vector
    v = ef.random_unit_vectors(rng=rng)
    assert v.shape == (3,)
    assert np.isclose(np.linalg.norm(v), 1.0)

    # multiple vectors
    V = ef.random_unit_vectors(10, rng=rng)
    assert V.shape == (10, 3)
    assert np.allclose(np.linalg.norm(V, axis=-1), 1.0)

    # grid of vectors
    V = ef.random_unit_vectors((10, 10), rng=rng)
    assert V.shape == (10, 10, 3)
    assert np.allclose(np.linalg.norm(V, axis=-1), 1.0)


def test_random_unit_vectors_reproducible():
    V1 = ef.random_unit_vectors(5, rng=1)
    V2 = ef.random_unit_vectors(5, rng=1)
    assert np.allclose(V1, V2)


def test_three_way_shuffle():
    rng = np.random.default_rng(0)

    counts = np.zeros(3)
    for _ in range(300):
        w = ef.three_way_shuffle(rng)
        assert w.shape == (3,)
        assert np.sum(w) == 1
        assert np.all((w == 0) | (w == 1))
        counts += w

    # every axis gets picked
    assert np.all(counts > 50)


def test_random_wiggle_angles():
    rng = np.random.default_rng(0)
    angles = np.array([ef.random_wiggle_angles(rng) for _ in range(100)])
    assert angles.shape == (100, 3)
    assert np.all(np.abs(angles) <= ef.WIGGLE_ANGLE)
    assert np.any(angles < 0) and np.any(angles > 0)
