"""Detection of boundary points touching an ellipsoid."""
import abc

from .util import clean_points


class ContactDetector(abc.ABC):
    """Finds the boundary points lying on or inside an ellipsoid.

    A detector is bound to one fixed set of points at construction. It may
    hold resources (device memory), so it should be closed when no longer
    needed, or used as a context manager.
    """

    def __init__(self, points):
        self.points = clean_points(points)

    @property
    def n_points(self):
        return self.points.shape[0]

    @abc.abstractmethod
    def find_contact_points(self, ellipsoid, tol=0):
        """Find the points contained in the ellipsoid.

        Parameters
        ----------
        ellipsoid : Ellipsoid
            The ellipsoid to test against.
        tol : float, non-negative
            Numerical tolerance for qualifying as inside the ellipsoid.

        Returns
        -------
        : np.ndarray, shape (m, 3)
            The contact points, a subset of ``self.points``.
        """
        pass

    def close(self):
        """Release any resources held by the detector."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


class CPUContactDetector(ContactDetector):
    """Evaluates containment on the host with NumPy."""

    def find_contact_points(self, ellipsoid, tol=0):
        if self.n_points == 0:
            return self.points
        return self.points[ellipsoid.contains(self.points, tol=tol)]


def find_contact_points(ellipsoid, points, tol=0):
    """Find the points contained in an ellipsoid on the CPU.

    This is convenient for one-off queries or for re-testing a small set of
    previous contact points.
    """
    return CPUContactDetector(points).find_contact_points(ellipsoid, tol=tol)
