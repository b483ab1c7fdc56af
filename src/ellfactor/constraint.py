"""Constraints applied around rigid moves of an ellipsoid."""
import abc

import numpy as np

from .util import unit


class EllipsoidConstraint(abc.ABC):
    """Hook called before and after each wiggle, bump and turn."""

    @abc.abstractmethod
    def pre(self, ellipsoid, fixed_point):
        """Record whatever is needed before the move.

        Parameters
        ----------
        ellipsoid : Ellipsoid
            The ellipsoid about to be moved.
        fixed_point : np.ndarray, shape (3,)
            The point the constraint refers to, typically the seed point.
        """
        pass

    @abc.abstractmethod
    def post(self, ellipsoid):
        """Correct the ellipsoid after the move."""
        pass


class NoConstraint(EllipsoidConstraint):
    def pre(self, ellipsoid, fixed_point):
        pass

    def post(self, ellipsoid):
        pass


class AnchorConstraint(EllipsoidConstraint):
    """Keep one surface point of the ellipsoid in place.

    The anchored point is the surface point that :meth:`Ellipsoid.surface_points`
    associates with the unit direction from the center towards the fixed
    point. After the move the ellipsoid is translated so that the surface
    point for the same direction is back where it was.

    When the fixed point is at the center there is no direction to anchor
    along, so the center is first moved to a random point near the fixed
    point.

    Parameters
    ----------
    rng : int or np.random.Generator
        Source of the random offset of the center.
    jitter : float, positive
        Standard deviation of that offset.
    """

    def __init__(self, rng=None, jitter=0.1):
        self.rng = np.random.default_rng(rng)
        self.jitter = jitter
        self._direction = None
        self._anchor = None

    def pre(self, ellipsoid, fixed_point):
        fixed_point = np.asarray(fixed_point, dtype=float)
        direction = fixed_point - ellipsoid.center
        while np.linalg.norm(direction) <= 1e-12:
            ellipsoid.set_centroid(
                *(fixed_point + self.rng.normal(scale=self.jitter, size=3))
            )
            direction = fixed_point - ellipsoid.center
        self._direction = unit(direction)
        self._anchor = ellipsoid.surface_points(self._direction)[0]

    def post(self, ellipsoid):
        assert self._direction is not None, "pre() must be called before post()."
        after = ellipsoid.surface_points(self._direction)[0]
        ellipsoid.set_centroid(*(ellipsoid.center + self._anchor - after))
        self._direction = None
        self._anchor = None
