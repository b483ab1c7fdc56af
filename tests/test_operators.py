import numpy as np
import pytest
from spatialmath.base import rotz

import ellfactor as ef


def _is_rotation(R, tol=1e-9):
    return np.allclose(R.T @ R, np.eye(3), atol=tol) and np.isclose(
        np.linalg.det(R), 1, atol=tol
    )


def _rotation_angle(R):
    return np.arccos(np.clip((np.trace(R) - 1) / 2, -1, 1))


def test_contact_unit_vector():
    ell = ef.Ellipsoid.sphere(radius=2, center=[5, 5, 5])

    u = ef.contact_unit_vector(ell, [[7, 5, 5]])
    assert np.allclose(u, [1, 0, 0])

    u = ef.contact_unit_vector(ell, [[7, 5, 5], [5, 7, 5]])
    assert np.allclose(u, [1, 1, 0] / np.sqrt(2))

    # directions cancel out
    u = ef.contact_unit_vector(ell, [[7, 5, 5], [3, 5, 5]])
    assert np.allclose(u, 0)

    with pytest.raises(ValueError):
        ef.contact_unit_vector(ell, np.zeros((0, 3)))


def test_orient_axes():
    ell = ef.Ellipsoid.sphere(radius=3, center=[5, 5, 5])

    for contact in [[5, 8, 5], [8, 5, 5], [2, 5, 5], [7, 7, 3]]:
        ef.orient_axes(ell, [contact])
        R = ell.rotation
        assert _is_rotation(R)
        assert np.allclose(R[:, 0], ef.unit(np.array(contact) - ell.center))

        # the third axis completes a right-handed frame
        assert np.allclose(np.cross(R[:, 0], R[:, 1]), R[:, 2])


def test_orient_axes_no_direction():
    ell = ef.Ellipsoid.sphere(radius=3, center=[5, 5, 5])
    with pytest.raises(ValueError):
        ef.orient_axes(ell, [[8, 5, 5], [2, 5, 5]])


def test_wiggle():
    rng = np.random.default_rng(0)
    ell = ef.Ellipsoid(radii=[1, 2, 3], center=[5, 5, 5])
    radii = ell.radii.copy()

    for _ in range(100):
        R0 = ell.rotation.copy()
        ef.wiggle(ell, rng=rng)
        R1 = ell.rotation

        # a small rotation that changes neither size nor position
        angle = _rotation_angle(R1 @ R0.T)
        assert 0 < angle <= 3 * ef.WIGGLE_ANGLE + 1e-9
        assert _is_rotation(R1)
    assert np.allclose(ell.radii, radii)
    assert np.allclose(ell.center, [5, 5, 5])


def test_calculate_torque_symmetric():
    ell = ef.Ellipsoid(radii=[1, 2.1, 3.1], center=[3, 3, 2])

    # contacts along the axes have normals parallel to their lever arms
    contacts = np.array([[3, 5.1, 2], [3, 3, 5.1], [3, 0.9, 2]])
    assert np.allclose(ef.calculate_torque(ell, contacts), 0)

    assert np.allclose(ef.calculate_torque(ell, np.zeros((0, 3))), 0)


def test_calculate_torque_off_axis():
    ell = ef.Ellipsoid(radii=[1, 2, 3])
    contact = ell.surface_points(ef.unit([1, 1, 0]))
    torque = ef.calculate_torque(ell, contact)

    # the normal lies in the x-y plane, so the torque is about z
    assert np.allclose(torque[:2], 0)
    assert not np.isclose(torque[2], 0)

    # the torque of a rotated configuration is rotated along with it
    C = rotz(0.7)
    ell.rotate(C)
    assert np.allclose(ef.calculate_torque(ell, contact @ C.T), C @ torque)


def test_turn():
    ell = ef.Ellipsoid(radii=[1, 2, 3], center=[1, 1, 1])
    contact = ell.surface_points(ef.unit([1, 1, 0]))

    ef.turn(ell, contact)
    R = ell.rotation
    assert _is_rotation(R)
    assert np.isclose(_rotation_angle(R), ef.operators.TURN_ANGLE)

    # turned about z
    assert np.allclose(R[:, 2], [0, 0, 1])
    assert np.allclose(ell.center, [1, 1, 1])


def test_turn_without_torque():
    ell = ef.Ellipsoid(radii=[1, 2.1, 3.1], center=[3, 3, 2])
    ef.turn(ell, np.zeros((0, 3)))
    assert np.allclose(ell.rotation, np.eye(3))

    ef.turn(ell, [[3, 5.1, 2], [3, 3, 5.1]])
    assert np.allclose(ell.rotation, np.eye(3))


def test_rotate_about_axis():
    ell = ef.Ellipsoid(radii=[1, 2, 3])
    ef.rotate_about_axis(ell, [0, 0, 1], theta=np.pi / 2)
    assert np.allclose(ell.rotation, rotz(np.pi / 2))


def test_bump():
    ell = ef.Ellipsoid.sphere(radius=2, center=[5, 5, 5])
    seed = np.array([5, 5, 5])

    moved = ef.bump(ell, [[7, 5, 5]], seed, vector_increment=1, max_drift=1)
    assert moved
    assert np.allclose(ell.center, [4.9, 5, 5])

    # keep bumping until the drift limit stops it
    for _ in range(20):
        moved = ef.bump(ell, [[7, 5, 5]], seed, vector_increment=1, max_drift=1)
    assert not moved
    drift = np.linalg.norm(ell.center - seed)
    assert 0.8 < drift < 1


def test_bump_no_direction():
    ell = ef.Ellipsoid.sphere(radius=2, center=[5, 5, 5])
    moved = ef.bump(ell, [[7, 5, 5], [3, 5, 5]], [5, 5, 5], vector_increment=1, max_drift=1)
    assert not moved
    assert np.allclose(ell.center, [5, 5, 5])
