""" Time forward maps: FlowState -> FlowState.

    Reference integrator for the double-diffusive channel. Every field is
    advected by a uniform streamwise velocity Uadv and diffused in the
    periodic directions with its own diffusivity (nu, kappa_t, kappa_s):
      dc/dt = -(i alpha Uadv + kappa (alpha^2 + gamma^2)) c
    Each Fourier mode evolves independently, so wall profiles are untouched. """
import dataclasses
import logging
from typing import Callable, Dict, Tuple, Union

import jax
import jax.numpy as jnp
import numpy as np

from ddc_eigenvals.errors import NumericDivergence
from ddc_eigenvals.interact_ddc.diagnostics import cfl_number
from ddc_eigenvals.interact_ddc.flow_field import FlowField, FlowState
from ddc_eigenvals.run_config import DDCFlags, TimeStep

Array = Union[np.ndarray, jnp.ndarray]
Coeffs = Tuple[Array, Array, Array]

logger = logging.getLogger(__name__)


def linear_rates(
    field: FlowField,
    diffusivity: float,
    Uadv: float
) -> np.ndarray:
  """ Growth rate of every (mx, mz) mode, broadcastable against field.coeffs """
  alpha, gamma = field.wavenumbers()
  rates = -(1j * alpha * Uadv + diffusivity * (alpha ** 2 + gamma ** 2))
  return rates[:, None, :, None]


def rk4_step(
    rates: Tuple[np.ndarray, ...],
    dt: float
) -> Callable[[Coeffs], Coeffs]:
  """ Function to march a timestep """
  def rhs(coeffs):
    return tuple(r * c for r, c in zip(rates, coeffs))

  def axpy(coeffs, h, k):
    return tuple(c + h * dc for c, dc in zip(coeffs, k))

  def step_fn(coeffs):
    k1 = rhs(coeffs)
    k2 = rhs(axpy(coeffs, 0.5 * dt, k1))
    k3 = rhs(axpy(coeffs, 0.5 * dt, k2))
    k4 = rhs(axpy(coeffs, dt, k3))
    return tuple(c + dt / 6. * (a + 2. * b + 2. * e + d)
                 for c, a, b, e, d in zip(coeffs, k1, k2, k3, k4))

  return step_fn


def repeated(
    step_fn: Callable[[Coeffs], Coeffs],
    steps: int
) -> Callable[[Coeffs], Coeffs]:
  def f_repeated(coeffs):
    final, _ = jax.lax.scan(lambda c, _: (step_fn(c), None), coeffs, xs=None, length=steps)
    return final
  return f_repeated


def generate_time_forward_map(
    dt: float,
    Nt: int,
    template: FlowState,
    flags: DDCFlags
) -> Callable[[Coeffs], Coeffs]:
  rates = (linear_rates(template.u, flags.nu, flags.Uadv),
           linear_rates(template.temp, flags.kappa_t, flags.Uadv),
           linear_rates(template.salt, flags.kappa_s, flags.Uadv))
  step_fn = rk4_step(rates, dt)

  time_forward_map = repeated(jax.remat(step_fn), steps=Nt)
  return jax.jit(time_forward_map)


class linearDDCIntegrator:
  def __init__(
      self,
      flags: DDCFlags,
      dt: TimeStep
  ):
    self.flags = flags
    self.dt = dt
    self._tfm_cache: Dict[tuple, Callable[[Coeffs], Coeffs]] = {}

  def _jit_tfm(
      self,
      template: FlowState,
      T: float
  ) -> Tuple[Callable[[Coeffs], Coeffs], TimeStep]:
    """ Create time forward map minimal number of times """
    timestep = self.dt.adjust_for_T(T)
    Nt = timestep.n_steps(T)
    key = (Nt, timestep.dt, template.u.shape)
    if key not in self._tfm_cache:
      self._tfm_cache[key] = generate_time_forward_map(timestep.dt, Nt, template, self.flags)
    return self._tfm_cache[key], timestep

  def advance(
      self,
      state: FlowState,
      T: float
  ) -> Tuple[FlowState, float]:
    """ Advance by T; returns the new state and the CFL number at its end """
    if T < 0.:
      raise ValueError("cannot integrate backwards, T = " + str(T))
    if T == 0.:
      return FlowState(*(f.copy() for f in state)), cfl_number(state.u, self.dt.dt, self.flags.Uadv)

    forward_map, timestep = self._jit_tfm(state, T)
    coeffs = forward_map((state.u.coeffs, state.temp.coeffs, state.salt.coeffs))
    for name, c in zip(FlowState._fields, coeffs):
      if not bool(jnp.all(jnp.isfinite(c))):
        raise NumericDivergence("integration produced non-finite " + name +
                                " coefficients over T = " + str(T))

    state_T = FlowState(*(f.new_with(c) for f, c in zip(state, coeffs)))
    return state_T, cfl_number(state_T.u, timestep.dt, self.flags.Uadv)


def adapt_timestep(
    dt: TimeStep,
    u: FlowField,
    Uadv: float=0.
) -> TimeStep:
  """ With variable dt, rescale dt so the CFL number of u sits mid-way in [CFLmin, CFLmax] """
  if not dt.variable:
    return dt
  cfl = cfl_number(u, dt.dt, Uadv)
  if cfl == 0. or dt.CFLmin <= cfl <= dt.CFLmax:
    return dt
  target = 0.5 * (dt.CFLmin + dt.CFLmax)
  dt_new = float(np.clip(dt.dt * target / cfl, dt.dtmin, dt.dtmax))
  logger.info("CFL %.6g outside [%g, %g]; dt %g -> %g", cfl, dt.CFLmin, dt.CFLmax, dt.dt, dt_new)
  return dataclasses.replace(dt, dt=dt_new)
