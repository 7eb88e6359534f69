""" Stability of an equilibrium, traveling wave or periodic orbit (u, temp, salt).

    eigenvalsRun checks that sigma f^T(x) = x, builds a small random
    perturbation dx obeying the run's constraint and symmetries, and hands
    (x, dx, T, eps) to the Arnoldi eigensolver. """
import enum
import logging
from typing import Optional

import jax
import numpy as np

from ddc_eigenvals.errors import DimensionMismatch, NotAFixedPoint
from ddc_eigenvals.interact_ddc.field_vector import field2vector
from ddc_eigenvals.interact_ddc.flow_field import FlowField, L2Norm, flow_state
from ddc_eigenvals.interact_ddc.symmetry import fieldSymmetry, project
from ddc_eigenvals.interact_ddc.time_forward_map import adapt_timestep, linearDDCIntegrator
from ddc_eigenvals.newton.dsi import ddcDSI, fd_step_size
from ddc_eigenvals.parallel import processGrid
from ddc_eigenvals.run_config import DDCFlags, EigenvalsFlags, TimeStep, findEigenvalsOptions
from ddc_eigenvals.stability.constraints import apply_constraint
from ddc_eigenvals.stability.eigenvals import Eigenvals, eigSpectrum
from ddc_eigenvals.stability.perturbations import add_perturbations, rescale_to_eps

logger = logging.getLogger(__name__)

FIXED_POINT_TOL = 1e-6


class runState(enum.Enum):
  INITIALIZING = 'Initializing'
  VERIFYING_FIXED_POINT = 'VerifyingFixedPoint'
  BUILDING_PERTURBATION = 'BuildingPerturbation'
  SOLVING = 'Solving'
  DONE = 'Done'
  FAILED = 'Failed'


class eigenvalsRun:
  def __init__(
      self,
      ddcflags: DDCFlags,
      eigenflags: EigenvalsFlags,
      options: findEigenvalsOptions,
      grid: processGrid=None,
      eigensolver=None,
      integrator=None
  ):
    """ eigensolver and integrator default to Eigenvals and linearDDCIntegrator """
    self.ddcflags = ddcflags
    self.eigenflags = eigenflags
    self.options = options
    self.grid = processGrid() if grid is None else grid
    self.eigensolver = Eigenvals(eigenflags, self.grid) if eigensolver is None else eigensolver
    self.integrator = integrator

    self.state = runState.INITIALIZING
    self.base = None
    self.sigma = None
    self.dsi = None
    self.x = None
    self.dx = None
    self.eps = None
    self.spectrum = None

  def _expect(
      self,
      state: runState
  ):
    if self.state != state:
      raise RuntimeError("run is in state " + self.state.value + ", expected " + state.value)

  def initialise(
      self,
      u: FlowField,
      temp: FlowField,
      salt: FlowField,
      sigma: Optional[fieldSymmetry]=None
  ):
    self._expect(runState.INITIALIZING)
    self.base = flow_state(u, temp, salt)
    logger.info("Nx == %d, Ny == %d, Nz == %d", u.Nx, u.Ny, u.Nz)
    logger.info("kxmin == %d, kxmax == %d, kzmin == 0, kzmax == %d",
                -u.kxmax_dealiased(), u.kxmax_dealiased(), u.kzmax_dealiased())

    timestep = adapt_timestep(TimeStep.from_flags(self.ddcflags), u, self.ddcflags.Uadv)
    if not self.options.poincare:
      timestep = timestep.adjust_for_T(self.ddcflags.T)
    logger.info("dt == %.17g, dtmin == %g, dtmax == %g, CFLmin == %g, CFLmax == %g",
                timestep.dt, timestep.dtmin, timestep.dtmax, timestep.CFLmin, timestep.CFLmax)

    self.sigma = fieldSymmetry() if sigma is None else sigma
    logger.info("sigma == %s", self.sigma)
    if len(self.ddcflags.symmetries) > 0:
      logger.info("Restricting flow to invariant subspace generated by symmetries %s",
                  [str(s) for s in self.ddcflags.symmetries])

    integrator = self.integrator
    if integrator is None:
      integrator = linearDDCIntegrator(self.ddcflags, timestep)
    self.dsi = ddcDSI(self.ddcflags, self.sigma, self.options.poincare, integrator, timestep,
                      u, temp, salt)
    self.x = field2vector(u, temp, salt)
    self.eps = fd_step_size(L2Norm(u), self.options.eps_du)
    self.state = runState.VERIFYING_FIXED_POINT

  def verify_fixed_point(self) -> float:
    """ ||x - sigma f^T(x)||, raising NotAFixedPoint above FIXED_POINT_TOL """
    self._expect(runState.VERIFYING_FIXED_POINT)
    logger.info("computing sigma f^T(u)...")
    _, norm_Gx = self.dsi.evaluate_base(self.x)
    logger.info("CFL == %s", self.dsi.getCFL())
    logger.info("L2Norm(Gx = (x - sigma f^T(x)) ) = %.17g", norm_Gx)
    logger.info("L2Norm(Gx normalized = (x - sigma f^T(x))/T ) = %.17g", norm_Gx / self.ddcflags.T)
    if norm_Gx > FIXED_POINT_TOL:
      raise NotAFixedPoint("(u, sigma, T) is not a solution of sigma f^T(u) - u = 0: "
                           "L2Norm(Gx) = %.6g exceeds %g" % (norm_Gx, FIXED_POINT_TOL))
    self.state = runState.BUILDING_PERTURBATION
    return norm_Gx

  def _random_field(
      self,
      template: FlowField,
      key: jax.Array
  ) -> FlowField:
    return add_perturbations(template.zeros_like(), template.kxmax_dealiased(),
                             template.kzmax_dealiased(), 1.0, self.options.decay, True, key)

  def build_perturbation(
      self,
      du: Optional[FlowField]=None,
      dtemp: Optional[FlowField]=None,
      dsalt: Optional[FlowField]=None
  ) -> np.ndarray:
    """ dx from the given fields, or random ones where None, each rescaled to eps_du """
    self._expect(runState.BUILDING_PERTURBATION)
    u, temp, salt = self.base
    key_u, key_temp, key_salt = jax.random.split(jax.random.PRNGKey(self.options.seed), 3)

    if du is None:
      logger.info("Constructing du...")
      du = apply_constraint(self._random_field(u, key_u), self.ddcflags.constraint, self.grid)
    if dtemp is None:
      logger.info("Constructing dtemp...")
      dtemp = self._random_field(temp, key_temp)
    if dsalt is None:
      logger.info("Constructing dsalt...")
      dsalt = self._random_field(salt, key_salt)
    flow_state(du, dtemp, dsalt)
    if not u.congruent(du):
      raise DimensionMismatch("perturbation " + repr(du) + " is not congruent with " + repr(u))

    du = project(self.ddcflags.symmetries, du)
    dtemp = project(self.ddcflags.tempsymmetries, dtemp)
    dsalt = project(self.ddcflags.saltsymmetries, dsalt)

    eps_du = self.options.eps_du
    du, dtemp, dsalt = (rescale_to_eps(f, eps_du) for f in (du, dtemp, dsalt))
    self.dx = field2vector(du, dtemp, dsalt)
    self.state = runState.SOLVING
    return self.dx

  def solve(self) -> eigSpectrum:
    self._expect(runState.SOLVING)
    self.spectrum = self.eigensolver.solve(self.dsi, self.x, self.dx, self.ddcflags.T, self.eps,
                                           decode=self.dsi.decode)
    self.state = runState.DONE
    return self.spectrum

  def run(
      self,
      u: FlowField,
      temp: FlowField,
      salt: FlowField,
      sigma: Optional[fieldSymmetry]=None,
      du: Optional[FlowField]=None,
      dtemp: Optional[FlowField]=None,
      dsalt: Optional[FlowField]=None
  ) -> eigSpectrum:
    try:
      self.initialise(u, temp, salt, sigma)
      self.verify_fixed_point()
      self.build_perturbation(du, dtemp, dsalt)
      return self.solve()
    except Exception:
      logger.error("eigenvalue run failed in state %s", self.state.value)
      self.state = runState.FAILED
      raise
