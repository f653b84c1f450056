import jax

jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp

import logging

logger = logging.getLogger(__name__)


class CorrectionBufferPool:
    """
    Scratch space for the implicit GR correction, owned by one simulation.

    Holds four parallel (allocated_n, 3) arrays: the constant term, the Newtonian
    snapshot, and the new and old fixed-point iterates. Capacity only ever grows.
    The implicit kernel is compiled against the padded capacity, so a run whose
    particle count drifts below its high-water mark reuses one compiled kernel.

    Attributes:
        allocated_n (int):
            Number of rows currently allocated
        n (int):
            Number of real particles in the most recent solve. Rows past ``n``
            hold no meaningful data.
        iterations (int):
            Fixed-point rounds run by the most recent solve
        converged (bool):
            Whether the most recent solve met the residual tolerance before the
            round cap
    """

    def __init__(self):
        self.allocated_n = 0
        self.n = 0
        self.iterations = 0
        self.converged = True
        self._allocate(0)

    def __repr__(self):
        return f"CorrectionBufferPool(allocated_n={self.allocated_n}, n={self.n})"

    def _allocate(self, n):
        self.a_const = jnp.zeros((n, 3))
        self.a_newton = jnp.zeros((n, 3))
        self.a_new = jnp.zeros((n, 3))
        self.a_old = jnp.zeros((n, 3))

    def ensure_capacity(self, n):
        """
        Grow all four buffers to hold at least ``n`` rows.

        Old contents are not preserved. Does nothing if ``n`` already fits.
        """
        if n > self.allocated_n:
            logger.debug(
                "growing GR correction buffers from %d to %d rows",
                self.allocated_n,
                n,
            )
            self._allocate(n)
            self.allocated_n = n

    def pad(self, arr, n):
        """Copy the first ``n`` rows of ``arr`` into a zero array of capacity rows."""
        padded = jnp.zeros((self.allocated_n,) + arr.shape[1:], dtype=jnp.float64)
        return padded.at[:n].set(arr[:n])

    def active(self, n):
        """Boolean mask of the rows that hold real particles."""
        return jnp.arange(self.allocated_n) < n

    def store(self, n, a_const, a_newton, a_new, a_old, iterations, converged):
        self.n = n
        self.a_const = a_const
        self.a_newton = a_newton
        self.a_new = a_new
        self.a_old = a_old
        self.iterations = int(iterations)
        self.converged = bool(converged)
