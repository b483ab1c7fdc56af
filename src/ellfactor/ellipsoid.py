import numpy as np
from spatialmath.base import trnorm


class Ellipsoid:
    """Mutable ellipsoid in three dimensions.

    The ellipsoid is the set of points :math:`p` such that
    :math:`(p - c)^T H (p - c) \\leq 1`, where :math:`c` is the center and
    :math:`H` is the ellipsoid tensor built from the radii and the rotation.

    Radii are not ordered by size: ``radii[i]`` is the semi-axis length along
    column ``i`` of ``rotation``. All of the mutating methods change the
    ellipsoid in place; use :meth:`copy` to take a snapshot.
    """

    def __init__(self, radii, rotation=None, center=None):
        radii = np.array(radii, dtype=float)
        assert radii.shape == (3,), "Ellipsoid needs exactly three radii."
        _check_radii(radii)
        self._radii = radii

        if rotation is None:
            rotation = np.eye(3)
        self._rotation = np.array(rotation, dtype=float)
        assert self._rotation.shape == (3, 3)

        if center is None:
            center = np.zeros(3)
        self.center = np.array(center, dtype=float)
        assert self.center.shape == (3,)

        self._tensor = None

    @classmethod
    def sphere(cls, radius, center=None):
        """Construct a sphere.

        Parameters
        ----------
        radius : float, positive
            Radius of the sphere.
        center : np.ndarray, shape (3,)
            Optional center point of the sphere.
        """
        return cls(radii=radius * np.ones(3), center=center)

    def __repr__(self):
        return f"Ellipsoid(radii={self._radii}, center={self.center}, rotation={self._rotation})"

    @property
    def radii(self):
        return self._radii

    @property
    def rotation(self):
        return self._rotation

    @property
    def tensor(self):
        """Ellipsoid tensor :math:`H = R \\mathrm{diag}(1/r^2) R^T`."""
        if self._tensor is None:
            self._tensor = (
                self._rotation @ np.diag(1.0 / self._radii**2) @ self._rotation.T
            )
        return self._tensor

    @property
    def volume(self):
        """The volume of the ellipsoid."""
        return 4 * np.pi * np.prod(self._radii) / 3

    def sorted_radii(self):
        """Copy of the radii in ascending order."""
        return np.sort(self._radii)

    def quadratic_form(self, points):
        """Evaluate :math:`(p - c)^T H (p - c)` for each point.

        Parameters
        ----------
        points : np.ndarray, shape (n, 3)
            The points to evaluate.

        Returns
        -------
        : np.ndarray, shape (n,)
            One value per point. Values up to one lie inside or on the
            ellipsoid.
        """
        d = np.atleast_2d(points) - self.center
        return np.sum((d @ self.tensor) * d, axis=1)

    def contains(self, points, tol=0):
        """Check if points are contained in the ellipsoid.

        Points on the surface count as contained. Points outside of the
        sphere bounding the largest semi-axis are rejected before the
        quadratic form is evaluated.

        Parameters
        ----------
        points : iterable
            Points to check. May be a single point or a list or array of points.
        tol : float, non-negative
            Numerical tolerance for qualifying as inside the ellipsoid.

        Returns
        -------
        :
            Given a single point, return ``True`` if the point is contained in
            the ellipsoid, or ``False`` if not. For multiple points, return a
            boolean array with one value per point.
        """
        points = np.asarray(points, dtype=float)
        ndim = points.ndim
        assert ndim <= 2, f"points must have 1 or 2 dimensions, but has {ndim}."
        points = np.atleast_2d(points)

        r_max = np.max(self._radii) * np.sqrt(1 + tol)
        d = points - self.center

        # bounding box, then bounding sphere
        near = np.all(np.abs(d) <= r_max, axis=1)
        near[near] = np.sum(d[near] ** 2, axis=1) <= r_max**2

        res = np.zeros(points.shape[0], dtype=bool)
        res[near] = self.quadratic_form(points[near]) <= 1 + tol
        if ndim == 1:
            return bool(res[0])
        return res

    def dilate(self, da, db, dc):
        """Add increments to the radii.

        Raises
        ------
        ValueError
            If any resulting radius is not strictly positive. The ellipsoid
            is left unchanged in that case.
        """
        radii = self._radii + np.array([da, db, dc], dtype=float)
        _check_radii(radii)
        self._radii = radii
        self._tensor = None

    def contract(self, fraction):
        """Shrink every radius by ``fraction`` of its current length."""
        self.dilate(*(-fraction * self._radii))

    def set_rotation(self, rotation):
        rotation = np.array(rotation, dtype=float)
        assert rotation.shape == (3, 3)
        self._rotation = rotation
        self._tensor = None

    def rotate(self, rotation):
        """Rotate the ellipsoid about its center.

        The delta rotation is applied on the left and the result is
        re-orthonormalized, since products of many small rotations drift.

        Parameters
        ----------
        rotation : np.ndarray, shape (3, 3)
            Rotation matrix.
        """
        self.set_rotation(trnorm(np.asarray(rotation) @ self._rotation))

    def set_centroid(self, x, y, z):
        self.center = np.array([x, y, z], dtype=float)

    def surface_points(self, directions):
        """Map unit directions onto the surface of the ellipsoid.

        Each direction is scaled by the radii in the ellipsoid's own frame,
        then rotated and translated into position.

        Parameters
        ----------
        directions : np.ndarray, shape (n, 3)
            Unit vectors.

        Returns
        -------
        : np.ndarray, shape (n, 3)
            The surface points.
        """
        directions = np.atleast_2d(directions)
        return (directions * self._radii) @ self._rotation.T + self.center

    def copy(self):
        """Deep copy of the ellipsoid."""
        return Ellipsoid(
            radii=self._radii.copy(),
            rotation=self._rotation.copy(),
            center=self.center.copy(),
        )


def _check_radii(radii):
    if not np.all(np.isfinite(radii)) or np.any(radii <= 0):
        raise ValueError(f"Ellipsoid radii must be positive and finite: {radii}")
