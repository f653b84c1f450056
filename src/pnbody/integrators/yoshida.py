import jax

jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp


def yoshida_step(sim, c_coeff: jnp.ndarray, d_coeff: jnp.ndarray) -> None:
    """
    Advance a simulation by one step of ``sim.dt`` with a drift-kick splitting.

    Velocity-dependent additional forces are evaluated with the velocities at the
    start of each kick, so the scheme is no longer exactly symplectic once they
    are switched on.

    Parameters:
        sim (pnbody.Simulation):
            The simulation to advance, modified in place
        c_coeff (jnp.ndarray):
            Drift coefficients, one more than there are kicks
        d_coeff (jnp.ndarray):
            Kick coefficients
    """
    state = sim.particles
    dt = sim.dt
    t0 = sim.t
    drifted = 0.0

    for c, d in zip(c_coeff[:-1].tolist(), d_coeff.tolist()):
        state.positions = state.positions + c * state.velocities * dt
        drifted += c
        sim.t = t0 + drifted * dt
        sim.compute_accelerations()
        state.velocities = state.velocities + d * state.accelerations * dt

    state.positions = state.positions + float(c_coeff[-1]) * state.velocities * dt
    sim.t = t0 + dt
