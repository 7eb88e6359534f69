"""Shared fixtures: a small 6 x 5 x 6 channel, 300 reals per state vector."""
import numpy as np
import pytest

from ddc_eigenvals.interact_ddc.flow_field import FlowField, FlowState


@pytest.fixture
def dims():
  return dict(Nx=6, Ny=5, Nz=6, Lx=2 * np.pi, Lz=np.pi)


@pytest.fixture
def make_field(dims):
  def _make(Nd, coeffs=None):
    return FlowField(dims['Nx'], dims['Ny'], dims['Nz'], Nd, dims['Lx'], dims['Lz'],
                     coeffs=coeffs)
  return _make


@pytest.fixture
def random_field(make_field):
  """Random coefficients on the dealiased modes only."""
  rng = np.random.default_rng(1234)

  def _make(Nd):
    f = make_field(Nd)
    coeffs = rng.standard_normal(f.shape) + 1j * rng.standard_normal(f.shape)
    mask = np.zeros(f.shape)
    mask[np.ix_(f.dealiased_mx(), np.arange(f.Ny), f.dealiased_mz(), np.arange(Nd))] = 1.
    return f.new_with(coeffs * mask)
  return _make


@pytest.fixture
def laminar(make_field):
  """u = (y, 0, 0), temp = salt = 0: unchanged by the reference integrator."""
  u = make_field(3)
  u.set_cmplx(0, 1, 0, 0, 1.)
  return FlowState(u, make_field(1), make_field(1))


@pytest.fixture
def single_mode(make_field):
  """temp = cos(x): coefficient 1/2 at kx = +-1."""
  def _make(amplitude=1.):
    temp = make_field(1)
    temp.set_cmplx(1, 0, 0, 0, 0.5 * amplitude)
    temp.set_cmplx(temp.Nx - 1, 0, 0, 0, 0.5 * amplitude)
    return temp
  return _make
