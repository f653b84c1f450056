"""Tests for the minimal host simulation and the Extras attachment layer.

The precession tests integrate an eccentric test-particle orbit with and without
each GR model and compare the difference in the longitude of periapsis against
the analytic 1PN rate, 6 pi G M / (c^2 a (1 - e^2)) per orbit.
"""

import jax

jax.config.update("jax_enable_x64", True)

import warnings

import jax.numpy as jnp
import numpy as np
import pytest

from pnbody import Extras, GRParams, Simulation
from pnbody.accelerations.gr import gr_two_body_correction
from pnbody.accelerations.newtonian import newtonian_gravity
from pnbody.data.constants import (
    GAUSSIAN_GM_SUN,
    LEAPFROG_C,
    LEAPFROG_D,
    SPEED_OF_LIGHT,
    Y4_C,
    Y4_D,
)
from pnbody.utils.orbits import cartesian_to_elements


def _sun_and_planet(ecc=0.0, planet_mass=1e-6, **kwargs):
    sim = Simulation(G=1.0, **kwargs)
    sim.add(m=1.0)
    # start at periapsis of an a=1 orbit
    r_p = 1.0 - ecc
    v_p = np.sqrt((1.0 + planet_mass) * (1.0 + ecc) / r_p)
    sim.add(m=planet_mass, x=r_p, vy=v_p)
    return sim


def test_add_particles() -> None:
    sim = Simulation()
    sim.add(m=1.0)
    sim.add(m=1e-3, x=1.0, vy=1.0)
    sim.add(x=2.0, variational=True)
    assert sim.N == 3
    assert sim.N_var == 1
    assert sim.N_real == 2
    assert jnp.array_equal(sim.particles.positions[1], jnp.array([1.0, 0.0, 0.0]))
    assert jnp.array_equal(sim.particles.masses, jnp.array([1.0, 1e-3, 0.0]))


def test_add_rejects_bad_particles() -> None:
    sim = Simulation()
    with pytest.raises(ValueError):
        sim.add(m=-1.0)
    sim.add(m=1.0)
    sim.add(variational=True)
    with pytest.raises(ValueError):
        sim.add(m=1.0)


def test_unknown_integrator() -> None:
    with pytest.raises(ValueError):
        Simulation(integrator="euler")


def test_yoshida_coefficients() -> None:
    """Test the saved coefficients against the Yoshida (1990) triple jump."""
    w1 = 1 / (2 - 2 ** (1 / 3))
    w0 = 1 - 2 * w1
    assert jnp.allclose(Y4_D, jnp.array([w1, w0, w1]), atol=1e-15)
    assert jnp.allclose(
        Y4_C, 0.5 * jnp.array([w1, w0 + w1, w0 + w1, w1]), atol=1e-15
    )

    # one full step drifts and kicks by exactly dt
    for C, D in [(Y4_C, Y4_D), (LEAPFROG_C, LEAPFROG_D)]:
        assert len(C) == len(D) + 1
        assert float(jnp.sum(C)) == pytest.approx(1.0, abs=1e-15)
        assert float(jnp.sum(D)) == pytest.approx(1.0, abs=1e-15)
        assert jnp.array_equal(C, C[::-1])


def test_compute_accelerations_runs_additional_forces() -> None:
    sim = _sun_and_planet(ecc=0.2)
    rebx = Extras(sim)
    rebx.add_force("gr", c=50.0)
    sim.compute_accelerations()

    state = sim.particles
    expected = newtonian_gravity(state.positions, state.masses, 1.0)
    expected = expected + gr_two_body_correction(
        state.positions, state.velocities, state.masses, 1.0, 50.0
    )
    assert jnp.allclose(state.accelerations, expected, atol=1e-18, rtol=1e-14)


def test_compute_accelerations_respects_gravity_ignore_10() -> None:
    sim = _sun_and_planet(gravity_ignore_10=True)
    sim.add(m=1e-3, x=-3.0, vy=-0.5)
    sim.compute_accelerations()
    state = sim.particles
    expected = newtonian_gravity(
        state.positions, state.masses, 1.0, gravity_ignore_10=True
    )
    assert jnp.allclose(state.accelerations, expected)


@pytest.mark.parametrize("integrator", ["leapfrog", "yoshida4"])
def test_circular_orbit_returns_home(integrator) -> None:
    """Test that one Newtonian period brings a circular orbit back to its start."""
    sim = _sun_and_planet(planet_mass=0.0, dt=2 * np.pi / 500, integrator=integrator)
    x0 = sim.particles.positions[1]
    sim.integrate(2 * np.pi)
    assert sim.t == pytest.approx(2 * np.pi)
    assert jnp.linalg.norm(sim.particles.positions[1] - x0) < 1e-3


def test_integrate_restores_dt() -> None:
    sim = _sun_and_planet(dt=0.3)
    sim.integrate(1.0)
    assert sim.dt == 0.3
    assert sim.t == pytest.approx(1.0)


def test_extras_registration() -> None:
    sim = _sun_and_planet()
    rebx = Extras(sim)
    params = rebx.add_force("gr_implicit", c=1e4, max_iterations=5)
    assert isinstance(params, GRParams)
    assert sim.extras is rebx
    assert sim.additional_forces == [params]
    assert params.max_iterations == 5

    with pytest.raises(ValueError):
        rebx.add_force("gr_implicit", c=1e4)
    with pytest.raises(ValueError):
        rebx.add_force("gr_full", c=1e4)
    with pytest.raises(ValueError):
        rebx.add_force("gr", c=-1.0)

    rebx.remove_force("gr_implicit")
    assert sim.additional_forces == []


def test_missing_speed_of_light_warns() -> None:
    with pytest.warns(RuntimeWarning):
        params = GRParams("gr")
    assert params.c == SPEED_OF_LIGHT

    with warnings.catch_warnings():
        warnings.simplefilter("error")
        GRParams("gr", c=10.0)


def test_implicit_pool_persists_across_steps() -> None:
    """Test that the implicit model reuses one pool sized to the real particles."""
    sim = _sun_and_planet(ecc=0.1)
    sim.add(m=1e-4, x=-2.0, vy=-0.7)
    sim.add(x=1.5, variational=True)
    params = Extras(sim).add_force("gr_implicit", c=1e3)

    sim.step()
    pool = params.pool
    assert pool.allocated_n == 3
    assert pool.n == 3
    assert pool.converged

    sim.step()
    assert params.pool is pool
    assert pool.allocated_n == 3
    assert jnp.all(jnp.isfinite(sim.particles.positions))


N_ORBITS = 3
STEPS_PER_ORBIT = 1000


def _longitude_of_periapsis(sim):
    state = sim.particles
    dx = state.positions[1:2] - state.positions[0:1]
    dv = state.velocities[1:2] - state.velocities[0:1]
    _, _, _, Omega, omega, _ = cartesian_to_elements(
        dx, dv, sim.G * (state.masses[0] + state.masses[1])
    )
    varpi = jnp.deg2rad(Omega[0] + omega[0])
    # wrap into (-pi, pi], the orbit starts with varpi = 0
    return float(jnp.arctan2(jnp.sin(varpi), jnp.cos(varpi)))


def _precession(force, c, ecc):
    sim = _sun_and_planet(
        ecc=ecc, planet_mass=0.0, dt=2 * np.pi / STEPS_PER_ORBIT
    )
    if force is not None:
        Extras(sim).add_force(force, c=c)
    sim.integrate(N_ORBITS * 2 * np.pi)
    return _longitude_of_periapsis(sim)


@pytest.mark.parametrize("force", ["gr", "gr_potential", "gr_implicit"])
def test_perihelion_precession(force) -> None:
    """Test the secular precession rate against the analytic 1PN result."""
    c = 50.0
    ecc = 0.5
    expected = N_ORBITS * 6 * np.pi / (c**2 * (1 - ecc**2))

    newtonian = _precession(None, c, ecc)
    relativistic = _precession(force, c, ecc)
    measured = relativistic - newtonian

    assert measured == pytest.approx(expected, rel=0.05)


def test_solar_system_units() -> None:
    """Test the built-in constants against their defining values."""
    assert np.sqrt(GAUSSIAN_GM_SUN) == pytest.approx(0.01720209895, rel=1e-12)
    assert SPEED_OF_LIGHT == pytest.approx(299792.458 * 86400 / 149597870.7, rel=1e-14)
