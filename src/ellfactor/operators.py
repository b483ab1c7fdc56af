"""Operators that move, turn and reshape an ellipsoid in place."""
import numpy as np
from spatialmath.base import angvec2r, rotx, roty, rotz

from .random import random_wiggle_angles
from .util import unit


# angle of a single torque-driven turn (radians)
TURN_ANGLE = 0.1


def contact_unit_vector(ellipsoid, contact_points):
    """Compute the mean unit vector from the center to the contact points.

    Parameters
    ----------
    ellipsoid : Ellipsoid
        The ellipsoid.
    contact_points : np.ndarray, shape (n, 3)
        The contact points. There must be at least one.

    Returns
    -------
    : np.ndarray, shape (3,)
        The normalized mean direction, or zeros if the directions cancel
        out.
    """
    contact_points = np.atleast_2d(contact_points)
    if contact_points.shape[0] < 1:
        raise ValueError("Need at least one contact point.")

    d = contact_points - ellipsoid.center
    lengths = np.linalg.norm(d, axis=1)

    # a contact point at the center has no direction
    nz = lengths > 0
    d = d[nz] / lengths[nz, None]
    if d.shape[0] == 0:
        return np.zeros(3)

    mean = np.mean(d, axis=0)
    length = np.linalg.norm(mean)
    if length < 1e-12:
        return np.zeros(3)
    return mean / length


def orient_axes(ellipsoid, contact_points):
    """Align the first axis with the direction of the contact points.

    The remaining two axes are chosen to complete a right-handed orthonormal
    frame.
    """
    short_axis = contact_unit_vector(ellipsoid, contact_points)
    if not short_axis.any():
        raise ValueError("Contact points do not define a direction.")

    # any vector not parallel to the short axis will do
    if abs(short_axis[0]) > 0.9:
        middle_axis = unit(np.cross(short_axis, [0, 1, 0]))
    else:
        middle_axis = unit(np.cross(short_axis, [1, 0, 0]))
    long_axis = unit(np.cross(short_axis, middle_axis))

    ellipsoid.set_rotation(np.column_stack((short_axis, middle_axis, long_axis)))


def wiggle(ellipsoid, rng=None):
    """Rotate the ellipsoid by a small random Euler rotation."""
    a, b, g = random_wiggle_angles(rng)
    ellipsoid.rotate(rotz(a) @ roty(b) @ rotx(g))


def calculate_torque(ellipsoid, contact_points):
    """Calculate the torque of the unit normals acting at the contact points.

    The normal at each contact point is computed on the centered and
    derotated ellipsoid, then rotated back into the image frame.

    Returns
    -------
    : np.ndarray, shape (3,)
        The negated sum of ``(p - c) x n`` over the contact points.
    """
    contact_points = np.atleast_2d(contact_points)
    if contact_points.shape[0] == 0:
        return np.zeros(3)

    R = ellipsoid.rotation
    d = contact_points - ellipsoid.center

    # normals in the ellipsoid's own frame are the gradient of the quadratic
    # form, up to a positive factor
    local = d @ R
    normals = local * (2.0 / ellipsoid.radii**2)
    lengths = np.linalg.norm(normals, axis=1)

    # no normal is defined at the center, and it has no lever arm anyway
    nz = lengths > 0
    normals = (normals[nz] / lengths[nz, None]) @ R.T

    return -np.sum(np.cross(d[nz], normals), axis=0)


def rotate_about_axis(ellipsoid, axis, theta=TURN_ANGLE):
    """Rotate the ellipsoid by ``theta`` radians about a unit axis."""
    ellipsoid.rotate(angvec2r(theta, axis))


def turn(ellipsoid, contact_points, theta=TURN_ANGLE):
    """Rotate the ellipsoid about the axis of the contact torque.

    Does nothing when there are no contact points or the torque vanishes.
    """
    torque = calculate_torque(ellipsoid, contact_points)
    if np.allclose(torque, 0, rtol=0, atol=1e-12):
        return
    rotate_about_axis(ellipsoid, unit(torque), theta=theta)


def bump(ellipsoid, contact_points, seed_point, vector_increment, max_drift):
    """Move the ellipsoid a small step away from the contact points.

    The step has length ``vector_increment / 10``. It is skipped if the new
    center would not lie within ``max_drift`` of the seed point.

    Returns
    -------
    : bool
        ``True`` if the ellipsoid was moved, ``False`` otherwise.
    """
    displacement = vector_increment / 10
    u = contact_unit_vector(ellipsoid, contact_points)
    if not u.any():
        return False
    center = ellipsoid.center - u * displacement

    drift = np.linalg.norm(center - np.asarray(seed_point, dtype=float))
    if drift < max_drift:
        ellipsoid.set_centroid(*center)
        return True
    return False
