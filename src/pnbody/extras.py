import jax

jax.config.update("jax_enable_x64", True)

import warnings

from pnbody.accelerations.buffers import CorrectionBufferPool
from pnbody.accelerations.gr import apply_gr, apply_gr_implicit, apply_gr_potential
from pnbody.data.constants import GR_FORCES, MAX_ITERATIONS, SPEED_OF_LIGHT

__all__ = ["Extras", "GRParams"]


class GRParams:
    """
    Settings and scratch state of one GR correction attached to a simulation.

    Calling the object with a simulation applies the correction to it, which is
    how it is registered as an additional force.

    Parameters:
        name (str):
            One of "gr", "gr_potential" or "gr_implicit"
        c (float, optional):
            Speed of light in the simulation's units. Defaults to the speed of
            light in AU/day, with a warning.
        max_iterations (int):
            Round cap of the implicit solve. Ignored by the explicit models.
    """

    def __init__(self, name, c=None, max_iterations=MAX_ITERATIONS):
        if name not in GR_FORCES:
            raise ValueError(f"Unknown force '{name}', choose from {list(GR_FORCES)}")
        if c is None:
            warnings.warn(
                f"No speed of light given for '{name}', using {SPEED_OF_LIGHT} AU/day."
                " Make sure this is consistent with the units of G.",
                RuntimeWarning,
                stacklevel=3,
            )
            c = SPEED_OF_LIGHT
        if not c > 0:
            raise ValueError(f"The speed of light must be positive, got {c}")

        self.name = name
        self.c = c
        self.max_iterations = max_iterations
        self.pool = CorrectionBufferPool()

    def __repr__(self):
        return f"GRParams(name='{self.name}', c={self.c})"

    def __call__(self, sim):
        if self.name == "gr":
            apply_gr(sim.particles, sim.N_real, sim.G, self.c)
        elif self.name == "gr_potential":
            apply_gr_potential(sim.particles, sim.N_real, sim.G, self.c)
        else:
            apply_gr_implicit(
                sim.particles,
                sim.N_real,
                sim.G,
                self.c,
                self.pool,
                gravity_ignore_10=sim.gravity_ignore_10,
                max_iterations=self.max_iterations,
            )


class Extras:
    """
    Attaches GR corrections to a pnbody.Simulation.

    Each added force gets its own GRParams, which lives as long as the simulation
    holds on to it.
    """

    def __init__(self, sim):
        self.sim = sim
        self.forces = {}
        sim.extras = self

    def add_force(self, name, c=None, max_iterations=MAX_ITERATIONS):
        if name in self.forces:
            raise ValueError(f"'{name}' has already been added to this simulation")
        params = GRParams(name, c=c, max_iterations=max_iterations)
        self.forces[name] = params
        self.sim.additional_forces.append(params)
        return params

    def remove_force(self, name):
        params = self.forces.pop(name)
        self.sim.additional_forces.remove(params)
