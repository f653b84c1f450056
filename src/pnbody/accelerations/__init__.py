import jax

jax.config.update("jax_enable_x64", True)

__all__ = [
    "CorrectionBufferPool",
    "apply_gr",
    "apply_gr_implicit",
    "apply_gr_potential",
    "gr_implicit_correction",
    "gr_potential_correction",
    "gr_two_body_correction",
    "newtonian_gravity",
]

from pnbody.accelerations.buffers import CorrectionBufferPool
from pnbody.accelerations.gr import (
    apply_gr,
    apply_gr_implicit,
    apply_gr_potential,
    gr_implicit_correction,
    gr_potential_correction,
    gr_two_body_correction,
)
from pnbody.accelerations.newtonian import newtonian_gravity
