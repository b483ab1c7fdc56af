"""Generate random values."""
import numpy as np


# maximum absolute angle of a single wiggle rotation (radians)
WIGGLE_ANGLE = 0.05


def random_unit_vectors(shape=1, rng=None):
    """Sample random uniform-distributed unit vectors in 3D.

    See https://compneuro.uwaterloo.ca/files/publications/voelker.2017.pdf

    Parameters
    ----------
    shape : int or tuple
        Shape of the set of vectors to be returned.
    rng : int or np.random.Generator
        Integer seed or Generator instance to use for generating random
        numbers.

    Returns
    -------
    : np.ndarray, shape ``shape + (3,)``
        The unit vectors. A single vector has shape ``(3,)``.
    """
    if np.isscalar(shape):
        shape = (shape,)
    full_shape = tuple(shape) + (3,)

    rng = np.random.default_rng(rng)
    X = rng.normal(size=full_shape)

    # make dimension compatible with X
    r = np.expand_dims(np.linalg.norm(X, axis=-1), axis=X.ndim - 1)
    vectors = X / r

    # squeeze out extra dimension if shape = 1
    if shape == (1,):
        return np.squeeze(vectors)
    return vectors


def three_way_shuffle(rng=None):
    """Pick one of the three axes with equal probability.

    Returns
    -------
    : np.ndarray, shape (3,)
        One-hot weight vector with a one at the chosen axis.
    """
    rng = np.random.default_rng(rng)
    weights = np.zeros(3)
    weights[rng.integers(3)] = 1.0
    return weights


def random_wiggle_angles(rng=None):
    """Three small angles uniformly distributed in ``[-WIGGLE_ANGLE, WIGGLE_ANGLE]``."""
    rng = np.random.default_rng(rng)
    return rng.uniform(low=-WIGGLE_ANGLE, high=WIGGLE_ANGLE, size=3)
