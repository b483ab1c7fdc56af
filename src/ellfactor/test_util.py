"""Utilities for testing."""
import numpy as np


def same_point_sets(A, B):
    """Check if two arrays of integer points hold the same rows, in any order.

    Parameters
    ----------
    A : np.ndarray, shape (n, 3)
        The first set of points.
    B : np.ndarray, shape (m, 3)
        The second set of points.

    Returns
    -------
    : bool
        ``True`` if the sorted rows of both arrays are equal, ``False``
        otherwise.
    """
    A = np.asarray(A).reshape((-1, 3))
    B = np.asarray(B).reshape((-1, 3))
    if A.shape != B.shape:
        return False
    A = A[np.lexsort(A.T[::-1])]
    B = B[np.lexsort(B.T[::-1])]
    return np.array_equal(A, B)


def voxel_sphere_shell(radius, center, thickness=1.0):
    """Integer points at distance ``[radius, radius + thickness)`` from a center.

    This is the layer of background voxels surrounding a solid ball, which
    is what a boundary extraction step would report for a spherical pore or
    particle.
    """
    center = np.asarray(center, dtype=float)
    r = int(np.ceil(radius + thickness))
    lo = np.floor(center).astype(int) - r
    grid = np.mgrid[
        lo[0] : lo[0] + 2 * r + 2, lo[1] : lo[1] + 2 * r + 2, lo[2] : lo[2] + 2 * r + 2
    ]
    points = grid.reshape((3, -1)).T
    d = np.linalg.norm(points - center, axis=1)
    return points[(d >= radius) & (d < radius + thickness)]
