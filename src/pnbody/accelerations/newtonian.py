import jax

jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp

from functools import partial


@partial(jax.jit, static_argnames=["gravity_ignore_10"])
def newtonian_gravity(
    positions: jnp.ndarray,
    masses: jnp.ndarray,
    G: float = 1.0,
    gravity_ignore_10: bool = False,
) -> jnp.ndarray:
    """
    At an instantaneous moment in time, calculate the acceleration on a set of particles
    due to Newtonian gravity.

    Args:
        positions: (N, 3) array of particle positions
        masses: (N,) array of particle masses
        G: Gravitational constant
        gravity_ignore_10: If True, skip the direct interaction between particles
            0 and 1. Useful when that pair is handled analytically elsewhere.

    Returns:
        accelerations: Accelerations on each particle due to Newtonian gravity

    """
    # Calculate pairwise differences
    N = positions.shape[0]
    dx = positions[:, None, :] - positions[None, :, :]  # (N,N,3)
    r2 = jnp.sum(dx * dx, axis=-1)  # (N,N)

    # Mask for i!=j calculations
    mask = ~jnp.eye(N, dtype=bool)  # (N,N)
    if gravity_ignore_10 and N > 1:
        mask = mask.at[0, 1].set(False).at[1, 0].set(False)

    r2 = jnp.where(mask, r2, 1.0)
    r3 = r2 * jnp.sqrt(r2)  # (N,N)

    prefac = jnp.where(mask, 1.0 / r3, 0.0)
    a_newt = -jnp.sum(
        prefac[:, :, None] * dx * (G * masses)[None, :, None], axis=1
    )  # (N,3)
    return a_newt


@jax.jit
def pair_newtonian_gravity(
    positions: jnp.ndarray,
    masses: jnp.ndarray,
    G: float = 1.0,
) -> jnp.ndarray:
    """
    The direct Newtonian interaction between particles 0 and 1 only.

    This is exactly the term newtonian_gravity drops when ``gravity_ignore_10`` is
    set. All other rows of the result are zero.
    """
    dx = positions[0] - positions[1]
    r2 = jnp.sum(dx * dx)
    prefac = -G / (r2 * jnp.sqrt(r2))
    acc = jnp.zeros_like(positions)
    acc = acc.at[0].set(prefac * masses[1] * dx)
    acc = acc.at[1].set(-prefac * masses[0] * dx)
    return acc
