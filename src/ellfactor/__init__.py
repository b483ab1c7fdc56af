from .ellipsoid import Ellipsoid
from .contact import ContactDetector, CPUContactDetector, find_contact_points
from .gpu import GPUContactDetector, gpu_available
from .constraint import EllipsoidConstraint, NoConstraint, AnchorConstraint
from .operators import (
    contact_unit_vector,
    orient_axes,
    wiggle,
    calculate_torque,
    rotate_about_axis,
    turn,
    bump,
)
from .optimiser import (
    OptimisationParameters,
    EllipsoidOptimiser,
    is_invalid,
    optimize,
    optimize_seeds,
)
from .random import *
from .util import *
from .logging_config import setup_logging
from .test_util import same_point_sets, voxel_sphere_shell
