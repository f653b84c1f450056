# Post-Newtonian general relativity corrections, following the acceleration models
# of REBOUNDx, Tamayo et al. (2020) (DOI: 10.1093/mnras/stz2870):
#   gr:           Benitez & Gallardo (2008), a single dominant central mass
#   gr_potential: Nobili & Roxburgh (1986), a modified central potential
#   gr_implicit:  the Einstein-Infeld-Hoffmann equations as written in
#                 Newhall et al. (1983) (bibcode: 1983A&A...125..150N), solved by
#                 fixed-point iteration for the acceleration-dependent terms
#
# Every correction is computed by a jitted, pure kernel that returns the change in
# acceleration. The apply_* functions are the per-step entry points: they read a
# ParticleState, run the kernel on the real particles and add the result to the
# state's accelerations.

import jax

jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp

from functools import partial

from pnbody.accelerations.buffers import CorrectionBufferPool
from pnbody.accelerations.newtonian import pair_newtonian_gravity
from pnbody.data.constants import CONVERGENCE_TOLERANCE, MAX_ITERATIONS
from pnbody.utils.states import ParticleState


def _check_inputs(state, n_real, C):
    state.validate(n_real)
    if not C > 0:
        raise ValueError(f"The speed of light must be positive, got {C}")


################################################################################
# Explicit, central-mass models
################################################################################


@jax.jit
def gr_two_body_correction(
    positions: jnp.ndarray,
    velocities: jnp.ndarray,
    masses: jnp.ndarray,
    G: float,
    C: float,
) -> jnp.ndarray:
    """
    GR correction assuming particle 0 dominates the mass of the system.

    Each particle i > 0 feels the Benitez & Gallardo (2008) correction relative to
    particle 0, and particle 0 feels the mass-weighted reaction so that momentum is
    conserved.

    Args:
        positions: (N, 3) positions of the real particles
        velocities: (N, 3) velocities of the real particles
        masses: (N,) masses of the real particles
        G: Gravitational constant
        C: Speed of light, in units consistent with G

    Returns:
        (N, 3) change in acceleration of each particle
    """
    if positions.shape[0] < 2:
        return jnp.zeros_like(positions)

    dx = positions[1:] - positions[0]  # (N-1,3)
    dv = velocities[1:] - velocities[0]  # (N-1,3)
    r2 = jnp.sum(dx * dx, axis=-1)
    r = jnp.sqrt(r2)

    gm0 = G * masses[0]
    alpha = gm0 / (r2 * r * C * C)
    v2 = jnp.sum(dv * dv, axis=-1)
    beta = 4.0 * gm0 / r - v2
    gamma = 4.0 * jnp.sum(dv * dx, axis=-1)

    da = alpha[:, None] * (beta[:, None] * dx + gamma[:, None] * dv)
    massratio = masses[1:] / masses[0]

    correction = jnp.zeros_like(positions)
    correction = correction.at[1:].set(da)
    correction = correction.at[0].set(-jnp.sum(massratio[:, None] * da, axis=0))
    return correction


@jax.jit
def gr_potential_correction(
    positions: jnp.ndarray,
    masses: jnp.ndarray,
    G: float,
    C: float,
) -> jnp.ndarray:
    """
    GR correction from the Nobili & Roxburgh (1986) modified potential.

    Only the orbiting particles are corrected; particle 0 feels no reaction.

    Args:
        positions: (N, 3) positions of the real particles
        masses: (N,) masses of the real particles
        G: Gravitational constant
        C: Speed of light, in units consistent with G

    Returns:
        (N, 3) change in acceleration of each particle
    """
    if positions.shape[0] < 2:
        return jnp.zeros_like(positions)

    dx = positions[1:] - positions[0]
    r2 = jnp.sum(dx * dx, axis=-1)
    prefac1 = 6.0 * (G * masses[0]) * (G * masses[0]) / (C * C)
    prefac = prefac1 / (r2 * r2)

    correction = jnp.zeros_like(positions)
    correction = correction.at[1:].set(-prefac[:, None] * dx)
    return correction


def apply_gr(state: ParticleState, n_real: int, G: float, C: float) -> None:
    """Add the central-mass GR correction to the first ``n_real`` particles."""
    _check_inputs(state, n_real, C)
    correction = gr_two_body_correction(
        state.positions[:n_real],
        state.velocities[:n_real],
        state.masses[:n_real],
        G,
        C,
    )
    state.add_accelerations(correction)


def apply_gr_potential(state: ParticleState, n_real: int, G: float, C: float) -> None:
    """Add the modified-potential GR correction to the first ``n_real`` particles."""
    _check_inputs(state, n_real, C)
    correction = gr_potential_correction(
        state.positions[:n_real],
        state.masses[:n_real],
        G,
        C,
    )
    state.add_accelerations(correction)


################################################################################
# Implicit N-body model
################################################################################


def _constant_term(velocities, gms, pair, dx, r, r2, r3, c2):
    # gravitational potential at each particle from every other particle
    phi = jnp.sum(jnp.where(pair, gms[None, :] / r, 0.0), axis=1)  # (N,)

    v2 = jnp.sum(velocities * velocities, axis=-1)  # (N,)
    vdot = jnp.sum(velocities[:, None, :] * velocities[None, :, :], axis=-1)  # (N,N)
    dv = velocities[:, None, :] - velocities[None, :, :]  # (N,N,3)

    # all (i,j) indexed: i is the particle being accelerated, j the source
    a1 = 4.0 * phi[:, None]
    a2 = phi[None, :]
    a3 = -v2[:, None]
    a4 = -2.0 * v2[None, :]
    a5 = 4.0 * vdot
    a6_0 = jnp.sum(dx * velocities[None, :, :], axis=-1)
    a6 = 1.5 * a6_0 * a6_0 / r2

    factor1 = (a1 + a2 + a3 + a4 + a5 + a6) / c2
    factor2 = (
        jnp.sum(dx * (4.0 * velocities[:, None, :] - 3.0 * velocities[None, :, :]), -1)
        / c2
    )

    terms = (gms[None, :, None] / r3[:, :, None]) * (
        factor1[:, :, None] * dx + factor2[:, :, None] * dv
    )
    return jnp.sum(jnp.where(pair[:, :, None], terms, 0.0), axis=1)


def _acceleration_dependent_term(a_total, gms, pair, dx, r, r3, c2):
    rdota = jnp.sum(dx * a_total[None, :, :], axis=-1)  # (N,N)
    terms = (gms[None, :, None] / (2.0 * c2)) * (
        dx * rdota[:, :, None] / r3[:, :, None]
        + 7.0 * a_total[None, :, :] / r[:, :, None]
    )
    return jnp.sum(jnp.where(pair[:, :, None], terms, 0.0), axis=1)


@partial(jax.jit, static_argnames=["max_iterations"])
def gr_implicit_kernel(
    positions: jnp.ndarray,
    velocities: jnp.ndarray,
    masses: jnp.ndarray,
    a_newton: jnp.ndarray,
    active: jnp.ndarray,
    G: float,
    C: float,
    tolerance: float = CONVERGENCE_TOLERANCE,
    max_iterations: int = MAX_ITERATIONS,
):
    """
    Solve the EIH equations for the 1PN correction on a set of particles.

    The acceleration of a particle appears on the right hand side of the EIH
    equations through the terms that couple it to every other particle. Those
    terms are solved for by fixed-point iteration: each round recomputes them
    from the previous round's total acceleration (Newtonian + constant term +
    previous iterate), and iteration stops once the largest squared relative
    change over all particles drops below ``tolerance`` or after
    ``max_iterations`` rounds, whichever comes first.

    Rows where ``active`` is False are treated as absent, which lets the arrays be
    padded out to a fixed length.

    Args:
        positions: (N, 3) positions
        velocities: (N, 3) velocities
        masses: (N,) masses
        a_newton: (N, 3) Newtonian acceleration of each particle
        active: (N,) boolean mask of real particles
        G: Gravitational constant
        C: Speed of light
        tolerance: Convergence threshold on the squared relative residual
        max_iterations: Round cap

    Returns:
        Tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray, jnp.ndarray, int, bool]:
        a_const (jnp.ndarray(shape=(N, 3))):
            The velocity and potential dependent part of the correction
        a_newton (jnp.ndarray(shape=(N, 3))):
            The Newtonian acceleration the iteration was seeded with
        a_new (jnp.ndarray(shape=(N, 3))):
            The final iterate of the acceleration-dependent part
        a_old (jnp.ndarray(shape=(N, 3))):
            The iterate before a_new
        iterations (int):
            Number of rounds run
        converged (bool):
            Whether the residual dropped below tolerance
    """
    N = positions.shape[0]
    c2 = C * C
    gms = G * masses

    pair = active[:, None] & active[None, :] & ~jnp.eye(N, dtype=bool)  # (N,N)
    dx = positions[:, None, :] - positions[None, :, :]  # (N,N,3)
    r2 = jnp.where(pair, jnp.sum(dx * dx, axis=-1), 1.0)  # (N,N)
    r = jnp.sqrt(r2)
    r3 = r2 * r

    a_const = _constant_term(velocities, gms, pair, dx, r, r2, r3, c2)

    def cond_fn(carry):
        k, _, _, converged = carry
        return (k < max_iterations) & (~converged)

    def body_fn(carry):
        k, _, a_new, _ = carry
        # swap: the last iterate becomes the input of this round
        a_old = a_new
        a_new = _acceleration_dependent_term(
            a_newton + a_const + a_old, gms, pair, dx, r, r3, c2
        )

        residual = jnp.sum((a_new - a_old) ** 2, axis=-1) / jnp.sum(
            a_new * a_new, axis=-1
        )
        residual = jnp.where(active & jnp.isfinite(residual), residual, 0.0)
        converged = jnp.max(residual, initial=0.0) < tolerance
        return k + 1, a_old, a_new, converged

    init_carry = (
        jnp.array(0),
        jnp.zeros_like(positions),
        jnp.zeros_like(positions),
        jnp.array(False),
    )
    iterations, a_old, a_new, converged = jax.lax.while_loop(
        cond_fn, body_fn, init_carry
    )

    return a_const, a_newton, a_new, a_old, iterations, converged


def gr_implicit_correction(
    positions: jnp.ndarray,
    velocities: jnp.ndarray,
    masses: jnp.ndarray,
    accelerations: jnp.ndarray,
    n_real: int,
    G: float,
    C: float,
    pool: CorrectionBufferPool = None,
    gravity_ignore_10: bool = False,
    max_iterations: int = MAX_ITERATIONS,
    tolerance: float = CONVERGENCE_TOLERANCE,
) -> jnp.ndarray:
    """
    The implicit N-body GR correction on the first ``n_real`` particles.

    The inputs are padded out to the pool's capacity before they reach the
    jitted kernel, and the kernel's buffers and diagnostics are stored back on the
    pool.

    Args:
        positions: (N, 3) positions
        velocities: (N, 3) velocities
        masses: (N,) masses
        accelerations: (N, 3) current (Newtonian) accelerations
        n_real: Number of real particles, taken from the front of the arrays
        G: Gravitational constant
        C: Speed of light
        pool: Buffer pool to grow and fill. A fresh one is made if None.
        gravity_ignore_10: Whether ``accelerations`` lack the direct Newtonian
            interaction between particles 0 and 1
        max_iterations: Round cap of the fixed-point solve
        tolerance: Convergence threshold on the squared relative residual

    Returns:
        (n_real, 3) change in acceleration of each real particle
    """
    if pool is None:
        pool = CorrectionBufferPool()
    pool.ensure_capacity(n_real)

    x = pool.pad(positions, n_real)
    v = pool.pad(velocities, n_real)
    m = pool.pad(masses, n_real)
    a_newton = pool.pad(accelerations, n_real)
    if gravity_ignore_10 and n_real > 1:
        a_newton = a_newton + pair_newtonian_gravity(x, m, G)

    a_const, a_newton, a_new, a_old, iterations, converged = gr_implicit_kernel(
        x,
        v,
        m,
        a_newton,
        pool.active(n_real),
        G,
        C,
        tolerance=tolerance,
        max_iterations=max_iterations,
    )
    pool.store(n_real, a_const, a_newton, a_new, a_old, iterations, converged)

    return (a_const + a_new)[:n_real]


def apply_gr_implicit(
    state: ParticleState,
    n_real: int,
    G: float,
    C: float,
    pool: CorrectionBufferPool,
    gravity_ignore_10: bool = False,
    max_iterations: int = MAX_ITERATIONS,
) -> None:
    """
    Add the implicit N-body GR correction to the first ``n_real`` particles.

    The state's current accelerations are taken as the Newtonian accelerations.
    Only the relativistic part is added back, the Newtonian part is left as the
    host computed it.
    """
    _check_inputs(state, n_real, C)
    correction = gr_implicit_correction(
        state.positions,
        state.velocities,
        state.masses,
        state.accelerations,
        n_real,
        G,
        C,
        pool=pool,
        gravity_ignore_10=gravity_ignore_10,
        max_iterations=max_iterations,
    )
    state.add_accelerations(correction)
