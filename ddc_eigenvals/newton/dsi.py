""" Dynamical system interface for the double-diffusive channel.

    Wraps the time integrator as G(x) = x - sigma f^T(x) on flat real vectors,
    and approximates the Jacobian action DG dx by a forward difference of G. """
import logging
from typing import Callable, Optional, Tuple

import numpy as np
import scipy.linalg as la

from ddc_eigenvals.errors import NumericDivergence
from ddc_eigenvals.interact_ddc.diagnostics import DragDissipation
from ddc_eigenvals.interact_ddc.field_vector import field2vector, vector2field
from ddc_eigenvals.interact_ddc.flow_field import FlowField, FlowState, flow_state
from ddc_eigenvals.interact_ddc.symmetry import fieldSymmetry
from ddc_eigenvals.interact_ddc.time_forward_map import linearDDCIntegrator
from ddc_eigenvals.run_config import DDCFlags, TimeStep

Array = np.ndarray
PoincareCondition = Callable[[FlowState], float]

logger = logging.getLogger(__name__)

SECTION_TOL = 1e-4


def fd_step_size(
    l2norm: float,
    eps_du: float
) -> float:
  """ Forward-difference step: eps_du for small states, eps_du / ||x|| otherwise """
  if l2norm < eps_du:
    return eps_du
  return eps_du / l2norm


class ddcDSI:
  def __init__(
      self,
      flags: DDCFlags,
      sigma: fieldSymmetry,
      poincare: bool,
      integrator: linearDDCIntegrator,
      dt: TimeStep,
      u: FlowField,
      temp: FlowField,
      salt: FlowField,
      condition: Optional[PoincareCondition]=None,
      max_crossing_time: Optional[float]=None,
      section_tol: float=SECTION_TOL
  ):
    """ (u, temp, salt) fix the discretisation used to decode state vectors.
        In Poincare mode f^T stops at the zero of condition nearest T, searched
        within max_crossing_time (default T/2) either side of T. """
    self.flags = flags
    self.sigma = fieldSymmetry() if sigma is None else sigma
    self.poincare = poincare
    self.integrator = integrator if integrator is not None else linearDDCIntegrator(flags, dt)
    self.dt = dt
    self.templates = flow_state(u, temp, salt)
    self.condition = condition if condition is not None else DragDissipation()
    self.max_crossing_time = 0.5 * flags.T if max_crossing_time is None else max_crossing_time
    self.section_tol = section_tol

    self.T = flags.T
    self._cfl = None
    self._residual_norm = None
    self._base_x = None
    self._base_Gx = None

  def encode(
      self,
      state: FlowState
  ) -> Array:
    return field2vector(*state)

  def decode(
      self,
      x: Array
  ) -> FlowState:
    return vector2field(x, *self.templates)

  def getCFL(self) -> Optional[float]:
    """ CFL number at the end of the last integration """
    return self._cfl

  def residual_norm(self) -> Optional[float]:
    """ Euclidean norm of the last G(x) returned by eval """
    return self._residual_norm

  def _to_section(
      self,
      state: FlowState
  ) -> FlowState:
    """ f^h: the zero of condition nearest T within T +- max_crossing_time.

        condition is sampled every dt across the window, and the crossing is
        interpolated linearly inside the bracketing step. Without a sign change
        in the window, the state at T is taken as on the section if
        |h| <= section_tol there. """
    dt = self.dt.dt
    n_back = min(int(np.ceil(self.max_crossing_time / dt - 1e-9)),
                 int(np.floor(self.T / dt + 1e-9)))
    n_fwd = max(1, int(np.ceil(self.max_crossing_time / dt - 1e-9)))

    state_old, self._cfl = self.integrator.advance(state, max(self.T - n_back * dt, 0.))
    h_old = self.condition(state_old)
    state_T, h_T = None, None
    best_offset, best_state = None, None
    for j in range(n_back + n_fwd + 1):
      # offsets from T in units of dt; later samples only lie further from T
      offset = j - n_back
      if offset == 0:
        state_T, h_T = state_old, h_old
      if h_old == 0. and (best_offset is None or abs(offset) < abs(best_offset)):
        best_offset, best_state = offset, state_old
      if best_offset is not None and offset >= abs(best_offset):
        break
      if j == n_back + n_fwd:
        break
      state_new, self._cfl = self.integrator.advance(state_old, dt)
      h_new = self.condition(state_new)
      if h_old * h_new < 0.:
        step_fraction = h_old / (h_old - h_new)
        if best_offset is None or abs(offset + step_fraction) < abs(best_offset):
          best_offset = offset + step_fraction
          best_state = FlowState(*(f_old + (f_new - f_old) * step_fraction
                                   for f_old, f_new in zip(state_old, state_new)))
      state_old, h_old = state_new, h_new

    if best_state is not None:
      logger.debug("Poincare crossing at t = T %+.6g", best_offset * dt)
      return best_state
    if abs(h_T) <= self.section_tol:
      logger.debug("no crossing within T +- %g; |h| = %.6g at T is on the section",
                   self.max_crossing_time, abs(h_T))
      return state_T
    raise NumericDivergence("no Poincare section crossing within " +
                            str(self.max_crossing_time) + " of T = " + str(self.T) +
                            ", h = " + str(h_T) + " at T")

  def time_map(
      self,
      state: FlowState
  ) -> FlowState:
    """ f^T, or in Poincare mode the return to the section nearest T """
    if self.poincare:
      return self._to_section(state)
    state_T, self._cfl = self.integrator.advance(state, self.T)
    return state_T

  def eval(
      self,
      x: Array
  ) -> Array:
    """ G(x) = x - sigma f^T(x) """
    state_T = self.time_map(self.decode(x))
    sigma_f = FlowState(*(self.sigma(f) for f in state_T))
    Gx = np.asarray(x) - self.encode(sigma_f)
    self._residual_norm = float(la.norm(Gx))
    return Gx

  def _G_base(
      self,
      x: Array
  ) -> Array:
    if self._base_x is None or not np.array_equal(self._base_x, x):
      self._base_x = np.array(x, copy=True)
      self._base_Gx = self.eval(x)
    return self._base_Gx

  def jacobian_vector(
      self,
      x: Array,
      dx: Array,
      eps: float
  ) -> Array:
    """ (G(x + eps dx) - G(x)) / eps """
    Gx = self._G_base(x)
    Gx_eps = self.eval(np.asarray(x) + eps * np.asarray(dx))
    return (Gx_eps - Gx) / eps

  def evaluate_base(
      self,
      x: Array
  ) -> Tuple[Array, float]:
    """ G(x) and its norm, cached for later Jacobian products at x """
    Gx = self._G_base(x)
    return Gx, float(la.norm(Gx))
