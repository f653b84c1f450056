import jax

jax.config.update("jax_enable_x64", True)

from pnbody.data.constants import LEAPFROG_C, LEAPFROG_D, Y4_C, Y4_D

# drift (C) and kick (D) coefficients for each named integrator
INTEGRATOR_COEFFS = {
    "leapfrog": (LEAPFROG_C, LEAPFROG_D),
    "yoshida4": (Y4_C, Y4_D),
}

from pnbody.integrators.yoshida import yoshida_step
