"""Arbitrary-precision implicit GR correction using mpmath.

This is a reference implementation of gr_implicit_kernel for testing the accuracy
of the float64 version. All computations use mpmath arbitrary-precision
arithmetic (controlled by mp.dps). Not suitable for production use: this is pure
Python with explicit loops and no JIT compilation.

The physics is identical to gr_implicit_kernel in gr.py. The stopping rule is
the same squared relative residual test, with the threshold scaled to the
working precision instead of fixed at float64 levels.
"""

import numpy as np
from mpmath import mp, mpf, sqrt

# Default to 50 decimal digits. Callers can override by setting mp.dps or passing
# dps to gr_implicit_correction_mpmath.
mp.dps = 50


def _to_mp(arr: np.ndarray) -> list:
    """Convert a numpy array to nested lists of mpf, preserving shape."""
    arr = np.asarray(arr, dtype=np.float64)
    if arr.ndim == 1:
        return [mpf(float(a)) for a in arr]
    elif arr.ndim == 2:
        return [[mpf(float(a)) for a in row] for row in arr]
    else:
        raise ValueError(f"Only 1D and 2D arrays supported, got ndim={arr.ndim}")


def _dot3(a: list, b: list) -> mpf:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def _solve(x, v, m, a_newton, G, C, max_iterations, tolerance):
    N = len(x)
    c2 = C * C
    gms = [G * mk for mk in m]

    dx = [[[x[i][k] - x[j][k] for k in range(3)] for j in range(N)] for i in range(N)]
    r2 = [[mpf(0)] * N for _ in range(N)]
    r = [[mpf(0)] * N for _ in range(N)]
    r3 = [[mpf(0)] * N for _ in range(N)]
    for i in range(N):
        for j in range(N):
            if i != j:
                r2[i][j] = _dot3(dx[i][j], dx[i][j])
                r[i][j] = sqrt(r2[i][j])
                r3[i][j] = r2[i][j] * r[i][j]

    # ---- Constant terms, with the potential sums redone for every pair ----
    a_const = [[mpf(0)] * 3 for _ in range(N)]
    for i in range(N):
        for j in range(N):
            if i == j:
                continue

            phi_i = mpf(0)
            phi_j = mpf(0)
            for k in range(N):
                if k != i:
                    phi_i += gms[k] / r[i][k]
                if k != j:
                    phi_j += gms[k] / r[k][j]

            vi2 = _dot3(v[i], v[i])
            vj2 = _dot3(v[j], v[j])
            vij = _dot3(v[i], v[j])
            proj = _dot3(dx[i][j], v[j])

            factor1 = (
                4 * phi_i
                + phi_j
                - vi2
                - 2 * vj2
                + 4 * vij
                + mpf(3) / 2 * proj * proj / r2[i][j]
            ) / c2
            factor2 = (
                sum(dx[i][j][k] * (4 * v[i][k] - 3 * v[j][k]) for k in range(3)) / c2
            )

            for k in range(3):
                dv = v[i][k] - v[j][k]
                a_const[i][k] += (
                    gms[j] * (factor1 * dx[i][j][k] + factor2 * dv) / r3[i][j]
                )

    # ---- Fixed-point iteration over the acceleration dependent terms ----
    a_new = [[mpf(0)] * 3 for _ in range(N)]
    iterations = 0
    for _round in range(max_iterations):
        a_old = a_new
        a_tot = [
            [a_newton[i][k] + a_const[i][k] + a_old[i][k] for k in range(3)]
            for i in range(N)
        ]
        a_new = [[mpf(0)] * 3 for _ in range(N)]
        for i in range(N):
            for j in range(N):
                if i == j:
                    continue
                daj = _dot3(dx[i][j], a_tot[j])
                for k in range(3):
                    a_new[i][k] += (gms[j] / (2 * c2)) * (
                        dx[i][j][k] * daj / r3[i][j] + 7 * a_tot[j][k] / r[i][j]
                    )
        iterations += 1

        max_residual = mpf(0)
        for i in range(N):
            norm = _dot3(a_new[i], a_new[i])
            if norm == 0:
                continue
            diff = [a_new[i][k] - a_old[i][k] for k in range(3)]
            residual = _dot3(diff, diff) / norm
            if residual > max_residual:
                max_residual = residual
        if max_residual < tolerance:
            break

    return a_const, a_new, iterations


def gr_implicit_correction_mpmath(
    positions: np.ndarray,
    velocities: np.ndarray,
    masses: np.ndarray,
    accelerations: np.ndarray,
    G: float,
    C: float,
    max_iterations: int = 50,
    dps: int | None = None,
) -> tuple:
    """Compute the implicit GR correction in arbitrary precision.

    Args:
        positions: (N, 3) positions of the real particles.
        velocities: (N, 3) velocities of the real particles.
        masses: (N,) masses of the real particles.
        accelerations: (N, 3) Newtonian accelerations of the real particles.
        G: Gravitational constant.
        C: Speed of light.
        max_iterations: Maximum fixed-point rounds.
        dps: Decimal places of precision. If None, uses current mp.dps.

    Returns:
        Tuple[np.ndarray, int]: the (N, 3) float64 correction and the number of
        rounds run.
    """
    old_dps = mp.dps
    if dps is not None:
        mp.dps = dps

    try:
        x = _to_mp(positions)
        v = _to_mp(velocities)
        m = _to_mp(masses)
        a_newton = _to_mp(accelerations)
        tolerance = mpf(10) ** (-2 * (mp.dps - 5))

        a_const, a_new, iterations = _solve(
            x, v, m, a_newton, mpf(G), mpf(C), max_iterations, tolerance
        )

        correction = np.array(
            [
                [float(a_const[i][k] + a_new[i][k]) for k in range(3)]
                for i in range(len(x))
            ]
        )
        return correction.reshape(-1, 3), iterations

    finally:
        if dps is not None:
            mp.dps = old_dps
