import jax

jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp

################################################################################
# Units
################################################################################

# Speed of light in AU/day, i.e. 299792.458 km/s * 86400 s/day / 149597870.7 km/AU
SPEED_OF_LIGHT = 173.14463267424034

# Square of the Gaussian gravitational constant, k = 0.01720209895.
# GM of the sun in AU^3/day^2, equivalently G when masses are in solar masses
GAUSSIAN_GM_SUN = 2.959122082855911e-4

################################################################################
# GR correction settings
################################################################################

# Hard cap on the rounds of the implicit fixed-point solve
MAX_ITERATIONS = 10

# Squared relative residual below which the implicit solve stops
CONVERGENCE_TOLERANCE = 1e-30

# Names accepted by pnbody.extras.Extras.add_force
GR_FORCES = ("gr", "gr_potential", "gr_implicit")

################################################################################
# Integrator coefficients
################################################################################

# Drift (C) and kick (D) coefficients of the split-operator integrators.
# Y4 is the Yoshida (1990) 4th order triple jump, with w1 = 1 / (2 - 2^(1/3))
# and w0 = 1 - 2 w1: D = [w1, w0, w1] and C = [w1, w0 + w1, w0 + w1, w1] / 2
LEAPFROG_C = jnp.array([0.5, 0.5])
LEAPFROG_D = jnp.array([1.0])

Y4_C = jnp.array(
    [
        0.6756035959798289,
        -0.1756035959798289,
        -0.1756035959798289,
        0.6756035959798289,
    ]
)
Y4_D = jnp.array([1.3512071919596578, -1.7024143839193155, 1.3512071919596578])
