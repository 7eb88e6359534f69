"""Tests for the ARPACK wrapper on a known Jacobian."""
import os

import numpy as np
import pytest

from ddc_eigenvals.parallel import processGrid
from ddc_eigenvals.run_config import EigenvalsFlags
from ddc_eigenvals.stability.eigenvals import Eigenvals, floquet_exponents


class _diagonalDSI:
  """DG = diag(1, 2, ..., N), so sigma Df^T = I - DG has multipliers 0, -1, ..., 1 - N."""

  def __init__(self, N):
    self.diag = np.arange(1., N + 1.)
    self.calls = []

  def jacobian_vector(self, x, dx, eps):
    self.calls.append(eps)
    return self.diag * dx

  def getCFL(self):
    return 0.


@pytest.fixture
def eigenflags(tmp_path):
  return EigenvalsFlags(Neig=4, Narnoldi=12, tol=1e-12, Nsave=0, outdir=str(tmp_path / "eigenvals"))


class TestSolve:

  def test_leading_eigenvalues(self, eigenflags):
    dsi = _diagonalDSI(20)
    x = np.zeros(20)
    dx = np.ones(20)
    spectrum = Eigenvals(eigenflags).solve(dsi, x, dx, 2., 1e-7)
    np.testing.assert_allclose(spectrum.eigenvalues.real, [20., 19., 18., 17.], rtol=1e-8)
    np.testing.assert_allclose(spectrum.eigenvalues.imag, 0., atol=1e-8)
    np.testing.assert_allclose(spectrum.multipliers.real, [-19., -18., -17., -16.], rtol=1e-8)
    assert set(dsi.calls) == {1e-7}

  def test_sorted_by_multiplier_magnitude(self, eigenflags):
    spectrum = Eigenvals(eigenflags).solve(_diagonalDSI(20), np.zeros(20), np.ones(20), 1., 1e-7)
    magnitudes = np.abs(spectrum.multipliers)
    assert np.all(np.diff(magnitudes) <= 0.)
    assert spectrum.eigenvectors.shape == (20, 4)

  def test_outputs_written(self, eigenflags):
    Eigenvals(eigenflags).solve(_diagonalDSI(20), np.zeros(20), np.ones(20), 1., 1e-7)
    for name in ('spectrum.npz', 'eigenvalues.asc', 'spectrum.png'):
      assert os.path.exists(os.path.join(eigenflags.outdir, name))
    with np.load(os.path.join(eigenflags.outdir, 'spectrum.npz')) as data:
      assert data['multipliers'].shape == (4,)
    table = np.loadtxt(os.path.join(eigenflags.outdir, 'eigenvalues.asc'))
    assert table.shape == (4, 6)

  def test_neig_capped_by_dimension(self, tmp_path):
    flags = EigenvalsFlags(Neig=10, Narnoldi=10, tol=1e-12, Nsave=0, outdir=str(tmp_path))
    spectrum = Eigenvals(flags).solve(_diagonalDSI(6), np.zeros(6), np.ones(6), 1., 1e-7)
    assert spectrum.multipliers.size == 4

  def test_length_mismatch(self, eigenflags):
    with pytest.raises(ValueError):
      Eigenvals(eigenflags).solve(_diagonalDSI(20), np.zeros(20), np.ones(19), 1., 1e-7)


class TestExponents:

  def test_log_over_period(self):
    multipliers = np.array([np.e, -1.])
    exponents = floquet_exponents(multipliers, 2.)
    assert exponents[0] == pytest.approx(0.5)
    assert exponents[1] == pytest.approx(0.5j * np.pi)


class _rankOneComm:
  """Rank 1 of 2."""

  def Get_rank(self):
    return 1

  def Get_size(self):
    return 2

  def bcast(self, obj, root=0):
    return obj


class TestDistributedOutput:

  def test_only_rank_zero_writes(self, eigenflags):
    grid = processGrid(2, 1, _rankOneComm())
    spectrum = Eigenvals(eigenflags, grid).solve(_diagonalDSI(20), np.zeros(20), np.ones(20),
                                                 1., 1e-7, decode=lambda v: ())
    np.testing.assert_allclose(spectrum.eigenvalues.real, [20., 19., 18., 17.], rtol=1e-8)
    assert not os.path.exists(eigenflags.outdir)

  def test_rank_zero_writes(self, eigenflags):
    Eigenvals(eigenflags, processGrid()).solve(_diagonalDSI(20), np.zeros(20), np.ones(20),
                                               1., 1e-7)
    assert os.path.exists(os.path.join(eigenflags.outdir, 'spectrum.npz'))
