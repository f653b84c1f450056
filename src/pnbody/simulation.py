import jax

jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp

from pnbody.accelerations.newtonian import newtonian_gravity
from pnbody.integrators import INTEGRATOR_COEFFS, yoshida_step
from pnbody.utils.states import ParticleState

__all__ = ["Simulation"]


class Simulation:
    """
    A minimal N-body host for the GR correction models.

    Holds the particles, computes Newtonian gravity, runs every registered
    additional force once per acceleration evaluation and steps the system forward
    with a fixed-step split-operator integrator.

    Parameters:
        G (float):
            Gravitational constant
        dt (float):
            Time step
        integrator (str):
            "leapfrog" or "yoshida4"
        gravity_ignore_10 (bool):
            If True, the Newtonian solver skips the direct interaction between
            particles 0 and 1
    """

    def __init__(
        self,
        G=1.0,
        dt=0.01,
        integrator="leapfrog",
        gravity_ignore_10=False,
    ):
        self.G = G
        self.dt = dt
        self.t = 0.0
        self.gravity_ignore_10 = gravity_ignore_10
        self.N_var = 0
        self.additional_forces = []
        self.extras = None

        self.particles = ParticleState(
            positions=jnp.empty((0, 3)),
            velocities=jnp.empty((0, 3)),
            masses=jnp.empty((0,)),
        )

        self.integrator = integrator
        self._coeffs = self._setup_integrator(integrator)

    def __repr__(self):
        return f"*************\npnbody Simulation\n N: {self.N}\n t: {self.t}\n*************"

    def _setup_integrator(self, integrator):
        if integrator not in INTEGRATOR_COEFFS:
            raise ValueError(
                f"Unknown integrator '{integrator}', choose from"
                f" {list(INTEGRATOR_COEFFS)}"
            )
        return INTEGRATOR_COEFFS[integrator]

    @property
    def N(self):
        return self.particles.N

    @property
    def N_real(self):
        return self.N - self.N_var

    ################
    # PUBLIC METHODS
    ################

    def add(self, m=0.0, x=0.0, y=0.0, z=0.0, vx=0.0, vy=0.0, vz=0.0, variational=False):
        """
        Append a particle.

        Real particles must all be added before any variational particle.
        """
        if not variational and self.N_var > 0:
            raise ValueError("Real particles must be added before variational ones")
        if m < 0:
            raise ValueError(f"Particle mass must be non-negative, got {m}")

        state = self.particles
        self.particles = ParticleState(
            positions=jnp.concatenate([state.positions, jnp.array([[x, y, z]])]),
            velocities=jnp.concatenate([state.velocities, jnp.array([[vx, vy, vz]])]),
            masses=jnp.concatenate([state.masses, jnp.array([m])]),
            accelerations=jnp.concatenate([state.accelerations, jnp.zeros((1, 3))]),
        )
        if variational:
            self.N_var += 1

    def compute_accelerations(self):
        """Newtonian gravity on the real particles, then every additional force."""
        state = self.particles
        n_real = self.N_real
        a_newt = newtonian_gravity(
            state.positions[:n_real],
            state.masses[:n_real],
            self.G,
            gravity_ignore_10=self.gravity_ignore_10,
        )
        state.accelerations = jnp.zeros_like(state.positions).at[:n_real].set(a_newt)

        for force in self.additional_forces:
            force(self)

    def step(self):
        yoshida_step(self, *self._coeffs)

    def integrate(self, tmax):
        """Step forward until ``t == tmax``, shortening the final step to land on it."""
        dt = self.dt
        try:
            while tmax - self.t > 1e-12 * abs(dt):
                self.dt = min(dt, tmax - self.t)
                self.step()
        finally:
            self.dt = dt
