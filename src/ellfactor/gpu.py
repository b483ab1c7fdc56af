"""GPU backend for contact point detection.

The boundary points are uploaded once per session. Each detection pass
copies the ellipsoid's centroid and tensor into two small device buffers,
launches one thread per boundary point to evaluate the quadratic form and
blocks on reading the results back. CuPy is imported lazily so that the
rest of the package works on machines without it.
"""
import importlib.util
import logging

import numpy as np

from .contact import ContactDetector

logger = logging.getLogger(__name__)


THREADS_PER_BLOCK = 256

KERNEL_NAME = "ellipsoid_quadratic_form"

KERNEL_SOURCE = r"""
extern "C" __global__
void ellipsoid_quadratic_form(
    const long long* points,  // boundary points, (n, 3) row-major
    const double* centroid,   // (3,)
    const double* tensor,     // (3, 3) row-major
    double* out,              // (n,)
    const int n
) {
    int i = blockDim.x * blockIdx.x + threadIdx.x;
    if (i >= n) return;

    double x = (double)points[3 * i] - centroid[0];
    double y = (double)points[3 * i + 1] - centroid[1];
    double z = (double)points[3 * i + 2] - centroid[2];

    double hx = tensor[0] * x + tensor[1] * y + tensor[2] * z;
    double hy = tensor[3] * x + tensor[4] * y + tensor[5] * z;
    double hz = tensor[6] * x + tensor[7] * y + tensor[8] * z;

    out[i] = x * hx + y * hy + z * hz;
}
"""


def gpu_available():
    """Check if CuPy is installed and can see at least one CUDA device."""
    if importlib.util.find_spec("cupy") is None:
        return False

    import cupy as cp

    try:
        return cp.cuda.runtime.getDeviceCount() > 0
    except cp.cuda.runtime.CUDARuntimeError as e:
        logger.debug(f"CUDA runtime unavailable: {e}")
        return False


class GPUContactDetector(ContactDetector):
    """Contact detector session owning its own kernel and device buffers.

    Sessions are not shared between threads: the centroid and tensor buffers
    are overwritten on every detection pass.

    Parameters
    ----------
    points : np.ndarray, shape (n, 3)
        The boundary points, uploaded to the device once.
    device : int or None
        CUDA device ordinal. Defaults to the current device.
    """

    def __init__(self, points, device=None):
        super().__init__(points)

        import cupy as cp

        self._cp = cp
        self.device = cp.cuda.Device(device)
        with self.device:
            self._kernel = cp.RawKernel(KERNEL_SOURCE, KERNEL_NAME)

            # compile now so that failures surface at setup time
            self._kernel.compile()

            self._points_d = cp.asarray(self.points)
            self._centroid_d = cp.zeros(3, dtype=cp.float64)
            self._tensor_d = cp.zeros(9, dtype=cp.float64)
            self._out_d = cp.zeros(max(self.n_points, 1), dtype=cp.float64)
        self._closed = False

        logger.debug(
            f"Opened GPU session on device {self.device.id} with {self.n_points} boundary points"
        )

    @property
    def closed(self):
        return self._closed

    def quadratic_form(self, ellipsoid):
        """Evaluate the ellipsoid's quadratic form at every boundary point.

        Returns
        -------
        : np.ndarray, shape (n,)
            The values, copied back to the host.
        """
        if self._closed:
            raise RuntimeError("GPU contact detector session is closed.")
        if self.n_points == 0:
            return np.zeros(0)

        n = self.n_points
        blocks = (n + THREADS_PER_BLOCK - 1) // THREADS_PER_BLOCK
        with self.device:
            self._centroid_d.set(np.ascontiguousarray(ellipsoid.center, dtype=np.float64))
            self._tensor_d.set(
                np.ascontiguousarray(ellipsoid.tensor, dtype=np.float64).ravel()
            )
            self._kernel(
                (blocks,),
                (THREADS_PER_BLOCK,),
                (
                    self._points_d,
                    self._centroid_d,
                    self._tensor_d,
                    self._out_d,
                    np.int32(n),
                ),
            )
            # get() synchronizes with the stream
            return self._out_d[:n].get()

    def find_contact_points(self, ellipsoid, tol=0):
        values = self.quadratic_form(ellipsoid)
        return self.points[values <= 1 + tol]

    def close(self):
        if self._closed:
            return
        self._points_d = None
        self._centroid_d = None
        self._tensor_d = None
        self._out_d = None
        self._kernel = None
        self._closed = True
        logger.debug(f"Closed GPU session on device {self.device.id}")
