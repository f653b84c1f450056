import jax

jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp


@jax.tree_util.register_pytree_node_class
class ParticleState:
    """
    Instantaneous state of every particle in a simulation.

    Rows are particle indices. The first ``N_real`` rows are physical bodies; any
    variational particles follow them. ``accelerations`` is the accumulator that
    Newtonian gravity and the additional forces write into during a step.

    Parameters:
        positions (jnp.ndarray(shape=(N, 3))):
            Cartesian positions
        velocities (jnp.ndarray(shape=(N, 3))):
            Cartesian velocities
        masses (jnp.ndarray(shape=(N,))):
            Particle masses, in units consistent with G
        accelerations (jnp.ndarray(shape=(N, 3)), optional):
            Current accumulated accelerations. Zeros if not given.
    """

    def __init__(
        self,
        positions,
        velocities,
        masses,
        accelerations=None,
    ):
        self.positions = jnp.asarray(positions, dtype=jnp.float64).reshape(-1, 3)
        self.velocities = jnp.asarray(velocities, dtype=jnp.float64).reshape(-1, 3)
        self.masses = jnp.asarray(masses, dtype=jnp.float64).reshape(-1)
        if accelerations is None:
            accelerations = jnp.zeros_like(self.positions)
        self.accelerations = jnp.asarray(accelerations, dtype=jnp.float64).reshape(
            -1, 3
        )

    def __repr__(self):
        return f"ParticleState(N={self.N})"

    @property
    def N(self):
        return self.positions.shape[0]

    def tree_flatten(self):
        children = (
            self.positions,
            self.velocities,
            self.masses,
            self.accelerations,
        )
        aux_data = None
        return children, aux_data

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        obj = object.__new__(cls)
        (
            obj.positions,
            obj.velocities,
            obj.masses,
            obj.accelerations,
        ) = children
        return obj

    def validate(self, n_real=None):
        """Check array shapes agree and, if given, that 0 <= n_real <= N."""
        N = self.N
        if self.velocities.shape != (N, 3) or self.accelerations.shape != (N, 3):
            raise ValueError(
                "positions, velocities and accelerations must all have shape (N, 3),"
                f" got {self.positions.shape}, {self.velocities.shape},"
                f" {self.accelerations.shape}"
            )
        if self.masses.shape != (N,):
            raise ValueError(f"masses must have shape ({N},), got {self.masses.shape}")
        if n_real is not None and not 0 <= n_real <= N:
            raise ValueError(f"n_real must be between 0 and {N}, got {n_real}")

    def add_accelerations(self, delta):
        """
        Add ``delta`` to the accelerations of the first ``len(delta)`` particles.

        This is the only way the correction models write into the state.
        """
        n = delta.shape[0]
        self.accelerations = self.accelerations.at[:n].add(delta)
