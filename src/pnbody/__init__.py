import jax

jax.config.update("jax_enable_x64", True)

from pnbody.accelerations.buffers import CorrectionBufferPool
from pnbody.extras import Extras, GRParams
from pnbody.simulation import Simulation
from pnbody.utils.states import ParticleState

__all__ = [
    "CorrectionBufferPool",
    "Extras",
    "GRParams",
    "ParticleState",
    "Simulation",
]
