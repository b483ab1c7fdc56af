"""Stochastic optimization of locally maximal inscribed ellipsoids.

Starting from a small sphere at a seed point, the ellipsoid is repeatedly
wiggled, bumped and turned, shrunk until it no longer touches the boundary
and re-inflated along a random axis. The largest ellipsoid seen so far is
kept, and the search stops once the volume has not improved for a number of
rounds.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np

from .constraint import NoConstraint
from .contact import CPUContactDetector
from .ellipsoid import Ellipsoid
from .gpu import GPUContactDetector, gpu_available
from .operators import bump, orient_axes, turn, wiggle
from .random import random_unit_vectors, three_way_shuffle
from .util import clean_points, voxel_out_of_bounds

logger = logging.getLogger(__name__)


# fewer boundary points than this cannot enclose a seed
MIN_BOUNDARY_POINTS = 6

# ellipsoids with a smaller semi-axis are degenerate
MIN_RADIUS = 0.5

# fraction removed by each step of shrink-to-fit
SHRINK_STEP = 0.01

# extra contraction once shrink-to-fit has cleared all contacts
SHRINK_MARGIN = 0.05

# extra contraction after the initial orientation
INITIAL_MARGIN = 0.1

# rigid moves tried in each round, in order
MOVES = ("wiggle", "bump", "turn")


@dataclass(frozen=True)
class OptimisationParameters:
    """Parameters of the ellipsoid optimization.

    Parameters
    ----------
    vector_increment : float, positive
        Step size for dilation, in image units.
    contact_sensitivity : int, positive
        Number of contact points at which an inflation stops.
    max_iterations : int, positive
        Number of rounds without improvement before the search stops. Also
        caps the number of steps in each shrink or inflation.
    max_drift : float, positive
        Maximum distance the center may move away from the seed point.
    n_vectors : int, positive
        Number of surface points sampled by the validity check.
    """

    vector_increment: float = 1 / 2.3
    contact_sensitivity: int = 1
    max_iterations: int = 100
    max_drift: float = np.sqrt(3)
    n_vectors: int = 20

    def __post_init__(self):
        if not self.vector_increment > 0:
            raise ValueError("vector_increment must be positive.")
        if self.contact_sensitivity < 1:
            raise ValueError("contact_sensitivity must be at least one.")
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least one.")
        if not self.max_drift > 0:
            raise ValueError("max_drift must be positive.")
        if self.n_vectors < 1:
            raise ValueError("n_vectors must be at least one.")

    @property
    def absolute_max_iterations(self):
        """Hard cap on the number of rounds of the main loop."""
        return 10 * self.max_iterations


def is_invalid(ellipsoid, image_dimensions, directions):
    """Check whether an ellipsoid is not sensible for the image.

    Parameters
    ----------
    ellipsoid : Ellipsoid
        The ellipsoid to check.
    image_dimensions : iterable
        Width, height and depth of the image.
    directions : np.ndarray, shape (n, 3)
        Unit vectors used to sample points on the ellipsoid's surface.

    Returns
    -------
    : bool
        ``True`` if the smallest radius is less than half a voxel, if the
        volume exceeds that of the image, or if more than half of the
        sampled surface points lie outside of the image.
    """
    if ellipsoid.sorted_radii()[0] < MIN_RADIUS:
        return True

    if ellipsoid.volume > np.prod(np.asarray(image_dimensions, dtype=float)):
        return True

    points = ellipsoid.surface_points(directions)
    n_outside = np.count_nonzero(voxel_out_of_bounds(points, image_dimensions))
    return n_outside > points.shape[0] // 2


class EllipsoidOptimiser:
    """Grows locally maximal ellipsoids inside a boundary.

    One optimiser may be used for many seed points one after the other, but
    not from several threads at once. It owns its contact detector, which
    holds device memory when running on the GPU, so close it when done or
    use it as a context manager.

    Parameters
    ----------
    boundary_points : np.ndarray, shape (n, 3)
        Integer coordinates of the boundary voxels. Never modified.
    image_dimensions : iterable
        Width, height and depth of the image.
    params : OptimisationParameters
        Parameters of the optimization.
    use_gpu : bool
        Detect contacts against the full boundary on the GPU. Falls back to
        the CPU if no device is available.
    rng : int or np.random.Generator
        Source of all randomness in the optimization.
    constraint : EllipsoidConstraint
        Applied around every wiggle, bump and turn. Defaults to no
        constraint.
    """

    def __init__(
        self,
        boundary_points,
        image_dimensions,
        params=None,
        use_gpu=False,
        rng=None,
        constraint=None,
    ):
        self.boundary_points = clean_points(boundary_points)
        self.image_dimensions = np.array(image_dimensions, dtype=int)
        assert self.image_dimensions.shape == (3,)

        if params is None:
            params = OptimisationParameters()
        self.params = params
        self.rng = np.random.default_rng(rng)
        if constraint is None:
            constraint = NoConstraint()
        self.constraint = constraint

        # directions at which the validity check samples the surface
        self.unit_vectors = np.atleast_2d(
            random_unit_vectors(params.n_vectors, rng=self.rng)
        )

        self.detector = self._make_detector(use_gpu)

    def _make_detector(self, use_gpu):
        if use_gpu:
            if gpu_available():
                return GPUContactDetector(self.boundary_points)
            logger.warning("No usable GPU found, detecting contacts on the CPU")
        return CPUContactDetector(self.boundary_points)

    @property
    def uses_gpu(self):
        return isinstance(self.detector, GPUContactDetector)

    def close(self):
        self.detector.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def find_contact_points(self, ellipsoid):
        """Find the boundary points on or inside the ellipsoid."""
        return self.detector.find_contact_points(ellipsoid)

    def is_invalid(self, ellipsoid):
        return is_invalid(ellipsoid, self.image_dimensions, self.unit_vectors)

    def initial_radius(self, center):
        """Distance to the nearest boundary point, less one increment.

        Returns
        -------
        : tuple
            A tuple ``(radius, point)`` where ``point`` is the nearest
            boundary point, shape (1, 3).
        """
        d = np.linalg.norm(self.boundary_points - center, axis=1)
        idx = np.argmin(d)
        radius = d[idx] - self.params.vector_increment
        return radius, self.boundary_points[idx : idx + 1]

    def shrink_to_fit(self, ellipsoid):
        """Contract the ellipsoid until it no longer touches the boundary.

        Only the points in contact at the start are re-tested while
        shrinking. Once clear, a further safety margin is removed.

        Returns
        -------
        : np.ndarray, shape (m, 3)
            The contact points remaining after the last re-test.
        """
        contact_points = self.find_contact_points(ellipsoid)
        previous = CPUContactDetector(contact_points)

        safety = 0
        while contact_points.shape[0] > 0 and safety < self.params.max_iterations:
            ellipsoid.contract(SHRINK_STEP)
            contact_points = previous.find_contact_points(ellipsoid)
            safety += 1

        ellipsoid.contract(SHRINK_MARGIN)
        return contact_points

    def inflate_to_fit(self, ellipsoid, weights):
        """Dilate the ellipsoid until it touches the boundary.

        Parameters
        ----------
        ellipsoid : Ellipsoid
            The ellipsoid to dilate.
        weights : np.ndarray, shape (3,)
            Relative growth of each axis per step, in units of the vector
            increment.

        Returns
        -------
        : np.ndarray, shape (m, 3)
            The contact points after the last step.
        """
        increments = np.asarray(weights, dtype=float) * self.params.vector_increment
        contact_points = self.find_contact_points(ellipsoid)

        safety = 0
        while (
            contact_points.shape[0] < self.params.contact_sensitivity
            and safety < self.params.max_iterations
        ):
            ellipsoid.dilate(*increments)
            contact_points = self.find_contact_points(ellipsoid)
            safety += 1
        return contact_points

    def perturb(self, move, ellipsoid, seed_point):
        """Apply one rigid move to the ellipsoid under the constraint.

        Parameters
        ----------
        move : str
            ``"wiggle"`` for a random rotation, ``"bump"`` to step away from
            the current contacts (a wiggle if there are none), or ``"turn"``
            to rotate against the torque of the contacts.
        ellipsoid : Ellipsoid
            The ellipsoid, changed in place.
        seed_point : np.ndarray, shape (3,)
            The seed point, which limits drift and anchors constraints.
        """
        assert move in MOVES, f"Unknown move {move}."
        contact_points = None
        if move != "wiggle":
            contact_points = self.find_contact_points(ellipsoid)
            if move == "bump" and contact_points.shape[0] == 0:
                move = "wiggle"

        self.constraint.pre(ellipsoid, seed_point)
        if move == "wiggle":
            wiggle(ellipsoid, rng=self.rng)
        elif move == "bump":
            bump(
                ellipsoid,
                contact_points,
                seed_point,
                self.params.vector_increment,
                self.params.max_drift,
            )
        else:
            turn(ellipsoid, contact_points)
        self.constraint.post(ellipsoid)

    def optimize(self, seed_point):
        """Grow a locally maximal ellipsoid from a seed point.

        Parameters
        ----------
        seed_point : iterable
            Coordinates of the seed, inside the foreground.

        Returns
        -------
        : Ellipsoid or None
            The ellipsoid of largest volume found, or ``None`` if no valid
            ellipsoid could be grown from this seed.
        """
        start = time.time()
        params = self.params
        seed_point = np.array(seed_point, dtype=float)
        assert seed_point.shape == (3,)

        if self.boundary_points.shape[0] < MIN_BOUNDARY_POINTS:
            logger.debug(
                f"Only {self.boundary_points.shape[0]} boundary points, skipping seed {seed_point}"
            )
            return None

        radius, contact_points = self.initial_radius(seed_point)
        if radius <= 0:
            logger.debug(f"Seed {seed_point} is too close to the boundary")
            return None
        logger.debug(f"Initial radius set to {radius}, first contact {contact_points[0]}")

        ellipsoid = Ellipsoid.sphere(radius, center=seed_point)
        volume_history = [ellipsoid.volume]

        orient_axes(ellipsoid, contact_points)
        self.shrink_to_fit(ellipsoid)
        ellipsoid.contract(INITIAL_MARGIN)

        # dilate the other two axes until they touch
        contact_points = self.find_contact_points(ellipsoid)
        while contact_points.shape[0] < params.contact_sensitivity:
            ellipsoid.dilate(0, params.vector_increment, params.vector_increment)
            contact_points = self.find_contact_points(ellipsoid)
            if self.is_invalid(ellipsoid):
                logger.warning(
                    f"Ellipsoid at {seed_point} is invalid, nullifying at initial oblation"
                )
                return None

        volume_history.append(ellipsoid.volume)

        # best ellipsoid so far
        maximal = ellipsoid.copy()

        total_iterations = 0
        no_improvement_count = 0
        while (
            total_iterations < params.absolute_max_iterations
            and no_improvement_count < params.max_iterations
        ):
            for move in MOVES:
                self.perturb(move, ellipsoid, seed_point)

                # contract until no contact, then dilate a random axis
                self.shrink_to_fit(ellipsoid)
                self.inflate_to_fit(ellipsoid, three_way_shuffle(self.rng))

                if self.is_invalid(ellipsoid):
                    logger.warning(
                        f"Ellipsoid at {seed_point} is invalid, nullifying after {total_iterations} iterations"
                    )
                    return None

                if ellipsoid.volume > maximal.volume:
                    maximal = ellipsoid.copy()

            # carry on from the best ellipsoid found
            ellipsoid = maximal.copy()
            volume_history.append(ellipsoid.volume)

            if volume_history[-1] > volume_history[-2]:
                no_improvement_count = 0
            else:
                no_improvement_count += 1

            total_iterations += 1

        # this usually means the ellipsoid grew out of control
        if no_improvement_count < params.max_iterations:
            logger.warning(
                f"Ellipsoid at {seed_point} seems to be out of control, nullifying after {total_iterations} iterations"
            )
            return None

        elapsed = 1000 * (time.time() - start)
        logger.info(
            f"Optimised ellipsoid at {seed_point} in {elapsed:.1f} ms after {total_iterations} iterations"
        )
        return ellipsoid


def optimize(boundary_points, seed_point, params, image_dimensions, use_gpu=False, rng=None):
    """Grow a locally maximal inscribed ellipsoid from a seed point.

    Parameters
    ----------
    boundary_points : np.ndarray, shape (n, 3)
        Integer coordinates of the boundary voxels.
    seed_point : iterable
        Coordinates of the seed.
    params : OptimisationParameters
        Parameters of the optimization.
    image_dimensions : iterable
        Width, height and depth of the image.
    use_gpu : bool
        Detect contacts on the GPU when one is available.
    rng : int or np.random.Generator
        Integer seed or Generator instance to use for generating random
        numbers.

    Returns
    -------
    : Ellipsoid or None
        The optimized ellipsoid, or ``None`` if none could be grown.
    """
    with EllipsoidOptimiser(
        boundary_points, image_dimensions, params=params, use_gpu=use_gpu, rng=rng
    ) as optimiser:
        return optimiser.optimize(seed_point)


def optimize_seeds(
    boundary_points,
    seed_points,
    params,
    image_dimensions,
    use_gpu=False,
    skip_ratio=1,
    n_workers=None,
    rng=None,
):
    """Grow ellipsoids from many seed points in parallel.

    Every ``skip_ratio``-th seed is optimized. Each task owns its own
    optimiser and an independent random generator, so the results do not
    depend on scheduling.

    Parameters
    ----------
    boundary_points : np.ndarray, shape (n, 3)
        Integer coordinates of the boundary voxels, shared by all tasks.
    seed_points : np.ndarray, shape (m, 3)
        The seed points.
    skip_ratio : int, positive
        Optimize one seed out of every ``skip_ratio``.
    n_workers : int or None
        Number of worker threads. Defaults to the executor's default.

    The remaining parameters are as for :func:`optimize`.

    Returns
    -------
    : list
        One entry per selected seed: an ``Ellipsoid`` or ``None``.
    """
    assert skip_ratio >= 1
    boundary_points = clean_points(boundary_points)
    seeds = np.atleast_2d(seed_points)[::skip_ratio]

    # one independent stream per seed
    children = np.random.default_rng(rng).spawn(seeds.shape[0])

    def task(seed, child_rng):
        return optimize(
            boundary_points,
            seed,
            params=params,
            image_dimensions=image_dimensions,
            use_gpu=use_gpu,
            rng=child_rng,
        )

    with ThreadPoolExecutor(max_workers=n_workers) as executor:
        results = list(executor.map(task, seeds, children))

    n_found = sum(e is not None for e in results)
    logger.info(f"Optimised {n_found} of {len(results)} seed points")
    return results
