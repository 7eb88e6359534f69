""" Random smooth perturbations of a FlowField, and rescaling to a target norm """
import logging

import jax
import jax.numpy as jnp
import numpy as np

from ddc_eigenvals.interact_ddc import chebyshev as ch
from ddc_eigenvals.interact_ddc.flow_field import FlowField, L2Norm

logger = logging.getLogger(__name__)


def _apply_profile_operator(
    P: np.ndarray,
    coeffs: jnp.ndarray
) -> jnp.ndarray:
  return jnp.einsum('mn,anzd->amzd', P, coeffs)


def _wall_conditions(
    field: FlowField,
    coeffs: jnp.ndarray
) -> jnp.ndarray:
  """ Zero wall values; for velocity also v = dv/dy = 0 at the walls """
  coeffs = _apply_profile_operator(ch.dirichlet_projector(field.Ny), coeffs)
  if field.Nd == 3:
    if field.Ny >= 4:
      v = _apply_profile_operator(ch.clamped_projector(field.Ny), coeffs[..., 1:2])
      coeffs = coeffs.at[..., 1:2].set(v)
    else:
      coeffs = coeffs.at[..., 1].set(0.)
  return coeffs


def _divergence_free(
    field: FlowField,
    coeffs: jnp.ndarray
) -> jnp.ndarray:
  """ Remove the horizontal gradient part: u += i alpha div / k^2, w += i gamma div / k^2 """
  alpha, gamma = field.wavenumbers()
  k2 = alpha ** 2 + gamma ** 2
  # (kx, kz) = (0, 0) has no horizontal gradient; its v must vanish
  coeffs = coeffs.at[0, :, 0, 1].set(0.)
  D = ch.diff_matrix(field.Ny) * (2. / (field.b - field.a))
  div = (1j * alpha[:, None, :] * coeffs[..., 0] +
         jnp.einsum('mn,anz->amz', D, coeffs[..., 1]) +
         1j * gamma[:, None, :] * coeffs[..., 2])
  with np.errstate(divide='ignore', invalid='ignore'):
    inv_k2 = np.where(k2 > 0., 1. / k2, 0.)
  correction = 1j * div * inv_k2[:, None, :]
  coeffs = coeffs.at[..., 0].add(alpha[:, None, :] * correction)
  coeffs = coeffs.at[..., 2].add(gamma[:, None, :] * correction)
  return coeffs


def _hermitian_kz0(
    field: FlowField,
    coeffs: jnp.ndarray
) -> jnp.ndarray:
  """ Real-field symmetry of the kz = 0 plane: c(-kx) = conj(c(kx)) """
  kx = field.kx_array()
  partner = (-kx) % field.Nx
  plane = coeffs[:, :, 0, :]
  plane = jnp.where((kx < 0)[:, None, None], jnp.conj(plane[partner]), plane)
  self_conjugate = (partner == np.arange(field.Nx))[:, None, None]
  plane = jnp.where(self_conjugate, plane.real.astype(plane.dtype), plane)
  return coeffs.at[:, :, 0, :].set(plane)


def add_perturbations(
    field: FlowField,
    kxmax: int,
    kzmax: int,
    mag: float,
    decay: float,
    meanflow: bool,
    key: jax.Array
) -> FlowField:
  """ field + random perturbation of modes |kx| <= kxmax, kz <= kzmax.

      Mode amplitudes fall off as mag decay^(|kx| + kz) decay^n. The
      perturbation satisfies homogeneous wall conditions, is divergence-free
      when field is a velocity, and keeps the (0, 0) mode only if meanflow. """
  if not (0. < decay < 1.):
    raise ValueError("decay must lie in (0, 1), got " + str(decay))
  kx = np.abs(field.kx_array())[:, None, None, None]
  kz = field.kz_array()[None, None, :, None]
  n = np.arange(field.Ny)[None, :, None, None]

  mask = (kx <= kxmax) & (kz <= kzmax)
  if not meanflow:
    mask = mask & ~((kx == 0) & (kz == 0))
  amplitude = np.where(mask, mag * decay ** (kx + kz) * decay ** n, 0.)

  key_re, key_im = jax.random.split(key)
  noise = (jax.random.normal(key_re, field.shape, dtype=jnp.float64) +
           1j * jax.random.normal(key_im, field.shape, dtype=jnp.float64))
  coeffs = amplitude * noise

  coeffs = _wall_conditions(field, coeffs)
  if field.Nd == 3:
    coeffs = _divergence_free(field, coeffs)
  coeffs = _hermitian_kz0(field, coeffs)
  return field + field.new_with(coeffs)


def rescale_to_eps(
    field: FlowField,
    eps: float
) -> FlowField:
  """ field * eps / L2Norm(field) """
  norm = L2Norm(field)
  if norm == 0.:
    raise ValueError("cannot rescale a zero field to norm " + str(eps))
  logger.info("L2Norm = %.17g, rescaling to %.17g", norm, eps)
  return field * (eps / norm)
