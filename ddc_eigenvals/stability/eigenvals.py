""" Arnoldi for stability of equilibria, traveling waves and periodic orbits.

    ARPACK works on the linearised return map sigma Df^T = I - DG, applied
    through finite differences of G; nothing is ever assembled. """
import logging
import os
from collections import namedtuple
from typing import Callable, Optional

import numpy as np
import scipy.linalg as la
from scipy.sparse.linalg import ArpackNoConvergence, LinearOperator
from scipy.sparse.linalg import eigs as arp_eigs

from ddc_eigenvals.interact_ddc.flow_field import FlowState
from ddc_eigenvals.parallel import processGrid
from ddc_eigenvals.run_config import EigenvalsFlags
from ddc_eigenvals.stability.plot_spectrum import plot_spectrum

Array = np.ndarray

logger = logging.getLogger(__name__)

eigSpectrum = namedtuple("eigSpectrum", "eigenvalues multipliers exponents eigenvectors")


def floquet_exponents(
    multipliers: Array,
    T: float
) -> Array:
  with np.errstate(divide='ignore'):
    return np.log(multipliers.astype(np.complex128)) / T


class Eigenvals:
  def __init__(
      self,
      flags: EigenvalsFlags,
      grid: processGrid=None
  ):
    """ Every rank iterates; only rank 0 of grid writes to flags.outdir """
    self.flags = flags
    self.grid = processGrid() if grid is None else grid
    self.n_matvec = 0

  def _monodromy_operator(
      self,
      dsi,
      x: Array,
      eps: float
  ) -> Callable[[Array], Array]:
    def matvec(q):
      q = np.asarray(q, dtype=np.float64).reshape((-1,))
      Lq = q - dsi.jacobian_vector(x, q, eps)
      self.n_matvec += 1
      cfl = dsi.getCFL()
      logger.info("Arnoldi iteration %d: |q| = %.6g, |Lq| = %.6g, CFL = %s",
                  self.n_matvec, la.norm(q), la.norm(Lq), cfl)
      return Lq
    return matvec

  def solve(
      self,
      dsi,
      x: Array,
      dx: Array,
      T: float,
      eps: float,
      decode: Optional[Callable[[Array], FlowState]]=None
  ) -> eigSpectrum:
    """ Leading multipliers of sigma Df^T at x; dx starts the Krylov sequence.
        Rank 0 writes the results to flags.outdir; decode turns eigenvectors into fields. """
    N = x.size
    if dx.size != N:
      raise ValueError("perturbation has length " + str(dx.size) + ", state has " + str(N))
    if N < 3:
      raise ValueError("ARPACK needs a state vector of length >= 3, got " + str(N))
    k = min(self.flags.Neig, N - 2)
    ncv = min(N, max(2 * k + 1, self.flags.Narnoldi))
    logger.info("computing %d eigenvalues with %d Arnoldi vectors, eps = %.6g", k, ncv, eps)

    self.n_matvec = 0
    operator = LinearOperator(shape=(N, N), matvec=self._monodromy_operator(dsi, x, eps),
                              dtype='float64')
    v0 = dx / la.norm(dx)
    try:
      multipliers, vectors = arp_eigs(operator, k=k, ncv=ncv, v0=v0, tol=self.flags.tol,
                                      which='LM')
    except ArpackNoConvergence as err:
      logger.warning("ARPACK converged %d of %d eigenvalues", len(err.eigenvalues), k)
      multipliers, vectors = err.eigenvalues, err.eigenvectors

    order = np.argsort(-np.abs(multipliers), kind='stable')
    multipliers = multipliers[order]
    vectors = vectors[:, order]
    spectrum = eigSpectrum(eigenvalues=1. - multipliers,
                           multipliers=multipliers,
                           exponents=floquet_exponents(multipliers, T),
                           eigenvectors=vectors)
    for j, (mu, lam) in enumerate(zip(spectrum.eigenvalues, spectrum.multipliers)):
      logger.info("eigenvalue %d: mu = %.17g %+.17gi, |Lambda| = %.17g",
                  j + 1, mu.real, mu.imag, abs(lam))
    if self.grid.taskid == 0:
      self.save(spectrum, T, decode)
    return spectrum

  def save(
      self,
      spectrum: eigSpectrum,
      T: float,
      decode: Optional[Callable[[Array], FlowState]]=None
  ):
    """ spectrum.npz, eigenvalues.asc, spectrum.png and the first Nsave eigenfunctions """
    outdir = self.flags.outdir
    os.makedirs(outdir, exist_ok=True)
    np.savez(os.path.join(outdir, 'spectrum.npz'),
             eigenvalues=spectrum.eigenvalues,
             multipliers=spectrum.multipliers,
             exponents=spectrum.exponents,
             T=T)
    table = np.column_stack([np.arange(1, spectrum.multipliers.size + 1),
                             spectrum.eigenvalues.real, spectrum.eigenvalues.imag,
                             np.abs(spectrum.multipliers),
                             spectrum.exponents.real, spectrum.exponents.imag])
    np.savetxt(os.path.join(outdir, 'eigenvalues.asc'), table,
               fmt=['%d'] + ['%.17g'] * 5,
               header='n Re(mu) Im(mu) |Lambda| Re(lambda) Im(lambda)')
    plot_spectrum(spectrum.multipliers, os.path.join(outdir, 'spectrum.png'),
                  title='T = %g' % T)

    if decode is None:
      return
    for j in range(min(self.flags.Nsave, spectrum.eigenvectors.shape[1])):
      vec = spectrum.eigenvectors[:, j]
      parts = [('', vec.real)]
      if np.any(vec.imag != 0.):
        parts.append(('i', vec.imag))
      for suffix, part in parts:
        for name, field in zip(('u', 'temp', 'salt'), decode(part)):
          filename = os.path.join(outdir, 'ef%d%s_%s.npz' % (j + 1, suffix, name))
          field.save(filename)
          logger.info("wrote %s", filename)
