""" FlowState <-> flat real vector for the Krylov solver.

    Layout: u, then temp, then salt. Within a field every dealiased
    coefficient in C order over (kx index, Chebyshev n, kz, component),
    each complex coefficient stored as (real, imag). Aliased modes are
    not stored and come back as zeros. """
from typing import Tuple

import jax.numpy as jnp
import numpy as np

from ddc_eigenvals.errors import DimensionMismatch
from ddc_eigenvals.interact_ddc.flow_field import FlowField, FlowState, flow_state


def _mode_index(
    field: FlowField
) -> Tuple[np.ndarray, ...]:
  return np.ix_(field.dealiased_mx(), np.arange(field.Ny), field.dealiased_mz(), np.arange(field.Nd))


def field_dof(
    field: FlowField
) -> int:
  """ Number of complex coefficients of a field that enter the state vector """
  return field.dealiased_mx().size * field.Ny * field.dealiased_mz().size * field.Nd


def state_vector_size(
    u: FlowField,
    temp: FlowField,
    salt: FlowField
) -> int:
  return 2 * (field_dof(u) + field_dof(temp) + field_dof(salt))


def _field_to_reals(
    field: FlowField
) -> np.ndarray:
  block = np.asarray(field.coeffs)[_mode_index(field)].reshape((-1,))
  return np.stack([block.real, block.imag], axis=-1).reshape((-1,))


def _reals_to_field(
    v: np.ndarray,
    template: FlowField
) -> FlowField:
  pairs = v.reshape((-1, 2))
  block = (pairs[:, 0] + 1j * pairs[:, 1]).reshape((template.dealiased_mx().size,
                                                    template.Ny,
                                                    template.dealiased_mz().size,
                                                    template.Nd))
  coeffs = np.zeros(template.shape, dtype=np.complex128)
  coeffs[_mode_index(template)] = block
  return template.new_with(jnp.asarray(coeffs))


def field2vector(
    u: FlowField,
    temp: FlowField,
    salt: FlowField
) -> np.ndarray:
  flow_state(u, temp, salt)
  return np.concatenate([_field_to_reals(u), _field_to_reals(temp), _field_to_reals(salt)])


def vector2field(
    v: np.ndarray,
    u: FlowField,
    temp: FlowField,
    salt: FlowField
) -> FlowState:
  """ Inverse of field2vector; (u, temp, salt) only supply the discretisation """
  flow_state(u, temp, salt)
  v = np.asarray(v, dtype=np.float64)
  expected = state_vector_size(u, temp, salt)
  if v.ndim != 1 or v.size != expected:
    raise DimensionMismatch("state vector has length " + str(v.size) + ", expected " +
                            str(expected) + " for Nx, Ny, Nz = " +
                            str((u.Nx, u.Ny, u.Nz)))
  n_u = 2 * field_dof(u)
  n_t = 2 * field_dof(temp)
  return FlowState(_reals_to_field(v[:n_u], u),
                   _reals_to_field(v[n_u:n_u + n_t], temp),
                   _reals_to_field(v[n_u + n_t:], salt))
