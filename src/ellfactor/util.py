import numpy as np


def unit(v):
    """Normalize a vector to unit length.

    Parameters
    ----------
    v : np.ndarray, shape (3,)
        The vector to normalize. It must have non-zero length.

    Returns
    -------
    : np.ndarray, shape (3,)
        Unit vector in the direction of ``v``.
    """
    v = np.asarray(v, dtype=float)
    length = np.linalg.norm(v)
    assert length > 0, "Cannot normalize a zero-length vector."
    return v / length


def clean_points(points):
    """Convert points to a contiguous ``(n, 3)`` integer array."""
    points = np.ascontiguousarray(points, dtype=np.int64)
    if points.size == 0:
        return points.reshape((0, 3))
    if points.ndim != 2 or points.shape[1] != 3:
        raise ValueError(f"points must have shape (n, 3), not {points.shape}.")
    return points


def voxel_out_of_bounds(points, image_dimensions):
    """Check which points fall outside of an image.

    A point belongs to the voxel obtained by truncating its coordinates
    towards zero, so points in (-1, 0) still fall in voxel 0.

    Parameters
    ----------
    points : np.ndarray, shape (n, 3)
        The points to check.
    image_dimensions : iterable
        Width, height and depth of the image.

    Returns
    -------
    : np.ndarray of bool, shape (n,)
        ``True`` where the point's voxel lies outside of the image.
    """
    voxels = np.trunc(np.atleast_2d(points))
    dims = np.asarray(image_dimensions)
    return np.any((voxels < 0) | (voxels >= dims), axis=1)
