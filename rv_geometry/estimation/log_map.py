"""
Logarithmic map of SO3 / SE3 and its derivative with respect to the
group element.

All functions work on the raw rotation matrix entries. Flattened rotations
are column-major, so a transform T = (R, t) corresponds to the 12-vector
[R[:, 0]; R[:, 1]; R[:, 2]; t].

With d = (trace(R) - 1) / 2 = cos(theta) and w = vee(R - R^T) = 2 sin(theta) a:

    omega = g(d) w,                  g = theta / (2 sin(theta))
    rho   = V^-1 t = t - 1/2 Omega t + c(d) Omega^2 t,
                                     c = (1 - theta / (2 tan(theta/2))) / theta^2

Close to the identity g and c are replaced by their expansions around the
limits 1/2 and 1/12.
Every function below gets its coefficients from rotation_coefficients() so
that values and derivatives always agree on the branch.
"""

from typing import NamedTuple

import numpy as np

from rv_geometry.utils.lie_groups import SE3
from rv_geometry.utils.math_utils import delta_r, skew


# d = cos(theta) above which the near-identity expansions are used.
NEAR_IDENTITY_THRESHOLD = 0.99999


class RotationCoefficients(NamedTuple):
    """Scalar coefficients of the SO3/SE3 logarithm and their d-derivatives."""
    theta: float
    g: float       # theta / (2 sin theta)
    dg: float      # dg/dd
    c: float       # (1 - theta / (2 tan(theta/2))) / theta^2
    dc: float      # dc/dd
    near_identity: bool


def trace_cosine(R: np.ndarray) -> float:
    """d = (trace(R) - 1) / 2, clipped to the valid cosine range."""
    return float(np.clip(0.5 * (R[0, 0] + R[1, 1] + R[2, 2] - 1.0), -1.0, 1.0))


def v_inverse_coefficient(theta: float) -> float:
    """c = (1 - theta / (2 tan(theta/2))) / theta^2 for theta away from 0."""
    half = 0.5 * theta
    return float((1.0 - half / np.tan(half)) / theta ** 2)


def rotation_coefficients(d: float) -> RotationCoefficients:
    """
    Safe trigonometric ratios of the logarithm for cos(theta) = d.

    Near the identity the removable singularities at theta = 0 are replaced
    by their expansions in e = 1 - d = theta^2/2 + O(theta^4):

        g = 1/2 + e/6,    c = 1/12 + e/360

    which take the limits 1/2 and 1/12 at the identity. The linear terms
    keep exp(ln(T)) exact to rounding up to the branch threshold, where the
    bare limits would be off by theta^3/6.

    At theta = pi, g and its derivatives diverge (inf); only c is finite.
    """
    if d > NEAR_IDENTITY_THRESHOLD:
        e = 1.0 - d
        return RotationCoefficients(float(np.sqrt(2.0 * e)), 0.5 + e / 6.0, -1.0 / 6.0,
                                    1.0 / 12.0 + e / 360.0, -1.0 / 360.0, True)

    theta = float(np.arccos(d))
    sq = np.sqrt(1.0 - d * d)  # sin(theta)

    with np.errstate(divide='ignore', invalid='ignore'):
        g = theta / (2.0 * sq)
        dg = (d * theta - sq) / (2.0 * sq ** 3)

        c = v_inverse_coefficient(theta)
        f = c * theta ** 2
        half = 0.5 * theta
        cot_half = 1.0 / np.tan(half)
        csc2_half = 1.0 / np.sin(half) ** 2

        # dc/dtheta, then chain through dtheta/dd = -1/sin(theta)
        df = 0.5 * (half * csc2_half - cot_half)
        dc_dtheta = df / theta ** 2 - 2.0 * f / theta ** 3
        dc = -dc_dtheta / sq

    return RotationCoefficients(theta, float(g), float(dg), float(c), float(dc), False)


def _ln_so3_near_pi(R: np.ndarray, d: float) -> np.ndarray:
    """Rotation log for angles close to pi, where vee(R - R^T) vanishes."""
    w = delta_r(R)
    theta = float(np.arctan2(0.5 * np.linalg.norm(w), d))

    # Symmetric part: (R + R^T)/2 - d I = (1 - d) a a^T
    aat = (0.5 * (R + R.T) - d * np.eye(3)) / (1.0 - d)
    k = int(np.argmax(np.diag(aat)))
    axis = aat[:, k] / np.sqrt(aat[k, k])
    axis /= np.linalg.norm(axis)
    if axis @ w < 0:
        axis = -axis
    return theta * axis


def ln_so3(R: np.ndarray) -> np.ndarray:
    """Logarithmic map of the 3D rotation group SO3."""
    R = np.asarray(R, dtype=float)
    d = trace_cosine(R)
    if d < -NEAR_IDENTITY_THRESHOLD:
        return _ln_so3_near_pi(R, d)
    return rotation_coefficients(d).g * delta_r(R)


def ln_so3xr3(T: SE3) -> np.ndarray:
    """Logarithmic map of the pseudo rigid transformation group <SO3, R3>."""
    return np.concatenate([ln_so3(T.rotation), T.translation])


def v_inverse(omega: np.ndarray, c: float) -> np.ndarray:
    """V^-1 = I - 1/2 Omega + c Omega^2 for the rotation vector omega."""
    Omega = skew(omega)
    return np.eye(3) - 0.5 * Omega + c * (Omega @ Omega)


def _ln_so3_and_c(R: np.ndarray):
    """Rotation log together with the matching V^-1 coefficient c."""
    d = trace_cosine(R)
    omega = ln_so3(R)
    if d < -NEAR_IDENTITY_THRESHOLD:
        # arccos(d) is too coarse near pi, take the angle from the log itself
        return omega, v_inverse_coefficient(float(np.linalg.norm(omega)))
    return omega, rotation_coefficients(d).c


def ln_se3(R: np.ndarray, t: np.ndarray) -> np.ndarray:
    """
    Logarithmic map of the 3D rigid transformation group SE3.

    Args:
        R: 3x3 rotation matrix
        t: 3x1 translation

    Returns:
        6x1 tangent vector [omega; rho] with SE3.exp([omega; rho]) == (R, t)
    """
    R = np.asarray(R, dtype=float)
    t = np.asarray(t, dtype=float).flatten()
    omega, c = _ln_so3_and_c(R)
    return np.concatenate([omega, v_inverse(omega, c) @ t])


def ln(T: SE3) -> np.ndarray:
    """Logarithmic map of an SE3 element."""
    return ln_se3(T.rotation, T.translation)


def _assemble_3x9(a: np.ndarray, G: np.ndarray) -> np.ndarray:
    """
    Jacobian wrt. column-major vec(R) of a function f(d, w).

    a is 1/2 df/dd (each diagonal entry moves d by 1/2) and G = df/dw.
    """
    J = np.empty((3, 9))
    J[:, 0] = a
    J[:, 1] = G[:, 2]     # R10 -> +w2
    J[:, 2] = -G[:, 1]    # R20 -> -w1
    J[:, 3] = -G[:, 2]    # R01 -> -w2
    J[:, 4] = a
    J[:, 5] = G[:, 0]     # R21 -> +w0
    J[:, 6] = G[:, 1]     # R02 -> +w1
    J[:, 7] = -G[:, 0]    # R12 -> -w0
    J[:, 8] = a
    return J


def dlnR_dR(R: np.ndarray) -> np.ndarray:
    """Jacobian (3x9) of ln_so3 wrt. the column-major entries of R."""
    R = np.asarray(R, dtype=float)
    coeffs = rotation_coefficients(trace_cosine(R))
    w = delta_r(R)
    return _assemble_3x9(0.5 * coeffs.dg * w, coeffs.g * np.eye(3))


def dVinvt_dR(R: np.ndarray, t: np.ndarray) -> np.ndarray:
    """
    Jacobian (3x9) of V^-1 t wrt. the column-major entries of R.

    In terms of w, V^-1 t = t - g/2 (w x t) + k w x (w x t) with k = c g^2.
    """
    R = np.asarray(R, dtype=float)
    t = np.asarray(t, dtype=float).flatten()
    coeffs = rotation_coefficients(trace_cosine(R))
    g, dg = coeffs.g, coeffs.dg
    k = coeffs.c * g * g
    dk = coeffs.dc * g * g + 2.0 * coeffs.c * g * dg

    w = delta_r(R)
    wxt = np.cross(w, t)
    wxwxt = np.cross(w, wxt)

    d_dd = -0.5 * dg * wxt + dk * wxwxt
    d_dw = (0.5 * g * skew(t)
            + k * (np.outer(w, t) + (w @ t) * np.eye(3) - 2.0 * np.outer(t, w)))
    return _assemble_3x9(0.5 * d_dd, d_dw)


def dlnT_dT(T: SE3) -> np.ndarray:
    """
    Jacobian (6x12) of the SE3 logarithm wrt. T flattened as [vec(R); t].
    """
    R = T.rotation
    t = T.translation
    omega, c = _ln_so3_and_c(R)

    J = np.zeros((6, 12))
    J[0:3, 0:9] = dlnR_dR(R)
    J[3:6, 0:9] = dVinvt_dR(R, t)
    J[3:6, 9:12] = v_inverse(omega, c)
    return J
