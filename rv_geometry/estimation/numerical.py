"""
Numerical differentiation along the local parameterisation of a value.

Used as the default Jacobian of every prediction and constraint model, and
as the reference when checking analytic Jacobians.
"""

from typing import Any, Callable, Optional

import numpy as np


# Forward-difference step for double precision.
DEFAULT_DIFF_STEP = 1e-12


def default_diff_step(dtype=np.float64) -> float:
    """
    Forward-difference step for values of the given floating point type.

    Double precision keeps the classic 1e-12 step. Coarser types fall back to
    sqrt(eps), since 1e-12 is below their resolution.
    """
    eps = np.finfo(np.dtype(dtype)).eps
    if eps <= np.finfo(np.float64).eps:
        return DEFAULT_DIFF_STEP
    return float(np.sqrt(eps))


def numerical_jacobian(
    fun: Callable[[Any], np.ndarray],
    x0: Any,
    add: Callable[[Any, np.ndarray], Any],
    dof: int,
    step: Optional[float] = None,
    central: bool = False,
) -> np.ndarray:
    """
    Jacobian of fun at x0 wrt. the local perturbation add(x0, delta).

    Column i is (fun(add(x0, h e_i)) - fun(x0)) / h, or the central
    difference (fun(add(x0, h e_i)) - fun(add(x0, -h e_i))) / 2h.

    Args:
        fun: Function of the (possibly group-valued) argument
        x0: Linearisation point
        add: Perturbation operator add(x, delta)
        dof: Dimension of delta
        step: Difference step (defaults to default_diff_step())
        central: Use central instead of forward differences

    Returns:
        len(fun(x0)) x dof matrix
    """
    h = default_diff_step() if step is None else step
    f0 = np.atleast_1d(np.asarray(fun(x0), dtype=float))
    J = np.zeros((len(f0), dof))

    for i in range(dof):
        eps = np.zeros(dof)
        eps[i] = h
        f_plus = np.atleast_1d(fun(add(x0, eps)))
        if central:
            f_minus = np.atleast_1d(fun(add(x0, -eps)))
            J[:, i] = (f_plus - f_minus) / (2.0 * h)
        else:
            J[:, i] = (f_plus - f0) / h
    return J


def relative_error(J_analytic: np.ndarray, J_numeric: np.ndarray) -> float:
    """||A - N||_F / max(||N||_F, 1)."""
    diff = np.linalg.norm(np.asarray(J_analytic) - np.asarray(J_numeric))
    return float(diff / max(np.linalg.norm(J_numeric), 1.0))
