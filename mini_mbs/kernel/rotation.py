# mini_mbs/kernel/rotation.py
"""
ROTATION: Euler-XYZ Rotation Matrices and Their Derivatives
===========================================================

PURPOSE:
--------
Every joint rotates its follower body by three Euler angles (alpha, beta,
gamma) about the x, y and z axes. The local rotation matrix is the fixed
product

    R(alpha, beta, gamma) = Rx(alpha) · Ry(beta) · Rz(gamma)

(intrinsic XYZ convention). The kinematic code needs more than R itself:

    ∂R/∂alpha = Rx'(alpha) · Ry(beta)  · Rz(gamma)
    ∂R/∂beta  = Rx(alpha)  · Ry'(beta) · Rz(gamma)
    ∂R/∂gamma = Rx(alpha)  · Ry(beta)  · Rz'(gamma)

for the Jacobian, and the time derivatives of those partials for the
Jacobian derivative. Everything here follows from the product rule applied
to the three single-axis factors.

All functions are pure: no state, no side effects.
"""

import numpy as np


def rot_x(alpha: float) -> np.ndarray:
    """Rotation matrix about the x-axis (right-handed)."""
    c, s = np.cos(alpha), np.sin(alpha)
    return np.array([
        [1.0, 0.0, 0.0],
        [0.0,   c,  -s],
        [0.0,   s,   c],
    ], dtype=float)


def rot_y(beta: float) -> np.ndarray:
    """Rotation matrix about the y-axis (right-handed)."""
    c, s = np.cos(beta), np.sin(beta)
    return np.array([
        [  c, 0.0,   s],
        [0.0, 1.0, 0.0],
        [ -s, 0.0,   c],
    ], dtype=float)


def rot_z(gamma: float) -> np.ndarray:
    """Rotation matrix about the z-axis (right-handed)."""
    c, s = np.cos(gamma), np.sin(gamma)
    return np.array([
        [  c,  -s, 0.0],
        [  s,   c, 0.0],
        [0.0, 0.0, 1.0],
    ], dtype=float)


def rot_xyz(alpha: float, beta: float, gamma: float) -> np.ndarray:
    """
    Local rotation matrix of a joint: Rx(alpha) · Ry(beta) · Rz(gamma).

    The composition order is fixed. All partial derivatives in this module
    are derivatives of exactly this product.
    """
    return rot_x(alpha) @ rot_y(beta) @ rot_z(gamma)


# =============================================================================
# Single-axis derivatives
# =============================================================================

def rot_x_partial(alpha: float) -> np.ndarray:
    """d Rx / d alpha."""
    c, s = np.cos(alpha), np.sin(alpha)
    return np.array([
        [0.0, 0.0, 0.0],
        [0.0,  -s,  -c],
        [0.0,   c,  -s],
    ], dtype=float)


def rot_y_partial(beta: float) -> np.ndarray:
    """d Ry / d beta."""
    c, s = np.cos(beta), np.sin(beta)
    return np.array([
        [ -s, 0.0,   c],
        [0.0, 0.0, 0.0],
        [ -c, 0.0,  -s],
    ], dtype=float)


def rot_z_partial(gamma: float) -> np.ndarray:
    """d Rz / d gamma."""
    c, s = np.cos(gamma), np.sin(gamma)
    return np.array([
        [ -s,  -c, 0.0],
        [  c,  -s, 0.0],
        [0.0, 0.0, 0.0],
    ], dtype=float)


def rot_x_partial_derivative(alpha: float, dalpha_dt: float) -> np.ndarray:
    """Time derivative of d Rx / d alpha: Rx''(alpha) · dalpha/dt."""
    c, s = np.cos(alpha), np.sin(alpha)
    return np.array([
        [0.0, 0.0, 0.0],
        [0.0,  -c,   s],
        [0.0,  -s,  -c],
    ], dtype=float) * dalpha_dt


def rot_y_partial_derivative(beta: float, dbeta_dt: float) -> np.ndarray:
    """Time derivative of d Ry / d beta: Ry''(beta) · dbeta/dt."""
    c, s = np.cos(beta), np.sin(beta)
    return np.array([
        [ -c, 0.0,  -s],
        [0.0, 0.0, 0.0],
        [  s, 0.0,  -c],
    ], dtype=float) * dbeta_dt


def rot_z_partial_derivative(gamma: float, dgamma_dt: float) -> np.ndarray:
    """Time derivative of d Rz / d gamma: Rz''(gamma) · dgamma/dt."""
    c, s = np.cos(gamma), np.sin(gamma)
    return np.array([
        [ -c,   s, 0.0],
        [ -s,  -c, 0.0],
        [0.0, 0.0, 0.0],
    ], dtype=float) * dgamma_dt


# =============================================================================
# Partials of the composed rotation
# =============================================================================

def partial_alpha(alpha: float, beta: float, gamma: float) -> np.ndarray:
    """∂R/∂alpha of rot_xyz."""
    return rot_x_partial(alpha) @ rot_y(beta) @ rot_z(gamma)


def partial_beta(alpha: float, beta: float, gamma: float) -> np.ndarray:
    """∂R/∂beta of rot_xyz."""
    return rot_x(alpha) @ rot_y_partial(beta) @ rot_z(gamma)


def partial_gamma(alpha: float, beta: float, gamma: float) -> np.ndarray:
    """∂R/∂gamma of rot_xyz."""
    return rot_x(alpha) @ rot_y(beta) @ rot_z_partial(gamma)


def partial_alpha_derivative(
    alpha: float, beta: float, gamma: float,
    dalpha_dt: float, dbeta_dt: float, dgamma_dt: float
) -> np.ndarray:
    """
    Total time derivative of ∂R/∂alpha.

        d/dt (Rx' Ry Rz) = Rx'' α̇ Ry Rz + Rx' Ry' β̇ Rz + Rx' Ry Rz' γ̇
    """
    Rxp = rot_x_partial(alpha)
    return (
        rot_x_partial_derivative(alpha, dalpha_dt) @ rot_y(beta) @ rot_z(gamma)
        + Rxp @ rot_y_partial(beta) @ rot_z(gamma) * dbeta_dt
        + Rxp @ rot_y(beta) @ rot_z_partial(gamma) * dgamma_dt
    )


def partial_beta_derivative(
    alpha: float, beta: float, gamma: float,
    dalpha_dt: float, dbeta_dt: float, dgamma_dt: float
) -> np.ndarray:
    """
    Total time derivative of ∂R/∂beta.

        d/dt (Rx Ry' Rz) = Rx' α̇ Ry' Rz + Rx Ry'' β̇ Rz + Rx Ry' Rz' γ̇
    """
    Ryp = rot_y_partial(beta)
    return (
        rot_x_partial(alpha) @ Ryp @ rot_z(gamma) * dalpha_dt
        + rot_x(alpha) @ rot_y_partial_derivative(beta, dbeta_dt) @ rot_z(gamma)
        + rot_x(alpha) @ Ryp @ rot_z_partial(gamma) * dgamma_dt
    )


def partial_gamma_derivative(
    alpha: float, beta: float, gamma: float,
    dalpha_dt: float, dbeta_dt: float, dgamma_dt: float
) -> np.ndarray:
    """
    Total time derivative of ∂R/∂gamma.

        d/dt (Rx Ry Rz') = Rx' α̇ Ry Rz' + Rx Ry' β̇ Rz' + Rx Ry Rz'' γ̇
    """
    Rzp = rot_z_partial(gamma)
    return (
        rot_x_partial(alpha) @ rot_y(beta) @ Rzp * dalpha_dt
        + rot_x(alpha) @ rot_y_partial(beta) @ Rzp * dbeta_dt
        + rot_x(alpha) @ rot_y(beta) @ rot_z_partial_derivative(gamma, dgamma_dt)
    )


def total_time_derivative(
    alpha: float, beta: float, gamma: float,
    dalpha_dt: float, dbeta_dt: float, dgamma_dt: float
) -> np.ndarray:
    """dR/dt = Σ (∂R/∂angle) · d(angle)/dt  (chain rule)."""
    return (
        partial_alpha(alpha, beta, gamma) * dalpha_dt
        + partial_beta(alpha, beta, gamma) * dbeta_dt
        + partial_gamma(alpha, beta, gamma) * dgamma_dt
    )


# =============================================================================
# Cross-product (Rössel) matrix
# =============================================================================

def roessel_matrix(v: np.ndarray) -> np.ndarray:
    """
    Cross-product matrix of a 3-vector, so that roessel_matrix(v) @ w == v × w.

    Also known as the skew-symmetric or tilde matrix.
    """
    return np.array([
        [  0.0, -v[2],  v[1]],
        [ v[2],   0.0, -v[0]],
        [-v[1],  v[0],   0.0],
    ], dtype=float)


def vee(S: np.ndarray) -> np.ndarray:
    """Inverse of roessel_matrix: the axial vector of a skew-symmetric matrix."""
    return np.array([S[2, 1], S[0, 2], S[1, 0]], dtype=float)
