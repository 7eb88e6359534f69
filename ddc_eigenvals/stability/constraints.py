""" Keep a velocity perturbation from changing the mean pressure balance or the mean flow.

    Only the (kx, kz) = (0, 0) mode is edited. The rank owning it computes the
    corrected profiles and broadcasts them, so every rank holds the same field. """
import logging
from typing import Tuple

import numpy as np

from ddc_eigenvals.interact_ddc import chebyshev as ch
from ddc_eigenvals.interact_ddc.flow_field import FlowField
from ddc_eigenvals.parallel import processGrid
from ddc_eigenvals.run_config import BULK_VELOCITY, PRESSURE_GRADIENT

logger = logging.getLogger(__name__)

_streamwise_spanwise = (0, 2)


def wall_shear(
    field: FlowField,
    i: int
) -> float:
  """ (df/dy|a + df/dy|b) / 2 of the real part of the mean profile of component i """
  dfdy = ch.diff(np.real(np.asarray(field.profile(0, 0, i))), field.a, field.b)
  return float((ch.eval_a(dfdy) + ch.eval_b(dfdy)) / 2.)


def profile_mean(
    field: FlowField,
    i: int
) -> float:
  return float(ch.mean(np.real(np.asarray(field.profile(0, 0, i)))))


def _edit_mean_mode(
    du: FlowField,
    grid: processGrid,
    corrections: Tuple[Tuple[int, int, complex], ...]
) -> FlowField:
  """ corrections (n, i, delta): c[0, n, 0, i] -= delta, decided on the owner, broadcast to all """
  root = grid.task_coeff(0, 0, du.Mx, du.Mz)
  corrections = grid.comm.bcast(corrections if grid.taskid == root else None, root=root)
  du = du.copy()
  for n, i, delta in corrections:
    du.set_cmplx(0, n, 0, i, du.cmplx(0, n, 0, i) - delta)
  return du


def apply_pressure_gradient_constraint(
    du: FlowField,
    grid: processGrid
) -> FlowField:
  """ Zero mean wall shear of u and w by adjusting their T_1 coefficients """
  h = (du.b - du.a) / 2.
  corrections = None
  if grid.owns(0, 0, du.Mx, du.Mz):
    duy, dwy = (wall_shear(du, i) for i in _streamwise_spanwise)
    logger.info("Modifying du so that it doesn't change mean pressure balance...")
    logger.info("pre-mod : (duya + duyb)/2 == %.17g, (dwya + dwyb)/2 == %.17g", duy, dwy)
    corrections = ((1, 0, h * duy), (1, 2, h * dwy))
  du = _edit_mean_mode(du, grid, corrections)
  if grid.owns(0, 0, du.Mx, du.Mz):
    logger.info("post-mod : (duya + duyb)/2 == %.17g, (dwya + dwyb)/2 == %.17g",
                *(wall_shear(du, i) for i in _streamwise_spanwise))
  return du


def apply_bulk_velocity_constraint(
    du: FlowField,
    grid: processGrid
) -> FlowField:
  """ Zero mean of u and w by adjusting their T_0 coefficients """
  corrections = None
  if grid.owns(0, 0, du.Mx, du.Mz):
    umean, wmean = (profile_mean(du, i) for i in _streamwise_spanwise)
    logger.info("Modifying du so that it doesn't change mean flow...")
    logger.info("pre-mod : u mean == %.17g, w mean == %.17g", umean, wmean)
    corrections = ((0, 0, umean), (0, 2, wmean))
  du = _edit_mean_mode(du, grid, corrections)
  if grid.owns(0, 0, du.Mx, du.Mz):
    logger.info("post-mod : u mean == %.17g, w mean == %.17g",
                *(profile_mean(du, i) for i in _streamwise_spanwise))
  return du


def apply_constraint(
    du: FlowField,
    constraint: str,
    grid: processGrid
) -> FlowField:
  if du.Nd != 3:
    raise ValueError("constraints act on velocity fields, got Nd=" + str(du.Nd))
  if constraint == PRESSURE_GRADIENT:
    return apply_pressure_gradient_constraint(du, grid)
  if constraint == BULK_VELOCITY:
    return apply_bulk_velocity_constraint(du, grid)
  raise ValueError("unknown constraint " + repr(constraint))
