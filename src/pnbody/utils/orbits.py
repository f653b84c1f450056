import jax

jax.config.update("jax_enable_x64", True)
import jax.numpy as jnp


@jax.jit
def cartesian_to_elements(x, v, gm):
    """
    Osculating Keplerian elements of orbits about a central mass.

    Angles are returned in degrees in [0, 360). For orbits in the xy plane the
    node is undefined; Omega is then 0 and omega is measured from the x axis, so
    Omega + omega is always the longitude of periapsis.

    Parameters:
        x (jnp.ndarray(shape=(N, 3))):
            Positions relative to the central body
        v (jnp.ndarray(shape=(N, 3))):
            Velocities relative to the central body
        gm (float):
            G times the sum of the central and orbiting masses

    Returns:
        Tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray, jnp.ndarray, jnp.ndarray, jnp.ndarray]:
        a (jnp.ndarray(shape=(N,))):
            Semi-major axis
        ecc (jnp.ndarray(shape=(N,))):
            Eccentricity
        inc (jnp.ndarray(shape=(N,))):
            Inclination
        Omega (jnp.ndarray(shape=(N,))):
            Longitude of the ascending node
        omega (jnp.ndarray(shape=(N,))):
            Argument of periapsis
        nu (jnp.ndarray(shape=(N,))):
            True anomaly
    """
    x = jnp.atleast_2d(x)
    v = jnp.atleast_2d(v)

    r = jnp.linalg.norm(x, axis=-1)
    v2 = jnp.sum(v * v, axis=-1)
    h = jnp.cross(x, v)
    h_norm = jnp.linalg.norm(h, axis=-1)
    h_hat = h / h_norm[:, None]

    e_vec = jnp.cross(v, h) / gm - x / r[:, None]
    ecc = jnp.linalg.norm(e_vec, axis=-1)
    a = 1.0 / (2.0 / r - v2 / gm)
    inc = jnp.arccos(jnp.clip(h_hat[:, 2], -1.0, 1.0))

    n = jnp.stack([-h[:, 1], h[:, 0], jnp.zeros_like(r)], axis=-1)
    n_norm = jnp.linalg.norm(n, axis=-1)
    n_hat = jnp.where(
        n_norm[:, None] > 0,
        n / jnp.where(n_norm > 0, n_norm, 1.0)[:, None],
        jnp.array([1.0, 0.0, 0.0]),
    )
    Omega = jnp.arctan2(n_hat[:, 1], n_hat[:, 0])

    omega = jnp.arctan2(
        jnp.sum(h_hat * jnp.cross(n_hat, e_vec), axis=-1),
        jnp.sum(n_hat * e_vec, axis=-1),
    )
    nu = jnp.arctan2(
        jnp.sum(h_hat * jnp.cross(e_vec, x), axis=-1),
        jnp.sum(e_vec * x, axis=-1),
    )

    to_deg = 180 / jnp.pi
    return (
        a,
        ecc,
        inc * to_deg,
        (Omega * to_deg) % 360,
        (omega * to_deg) % 360,
        (nu * to_deg) % 360,
    )
