""" Spectral flow fields on a Fourier x Chebyshev x Fourier channel.
    Coefficients c[mx, n, mz, i] with
      f(x, y, z) = sum c T_n(yhat) exp(i (kx x + kz z)),
    kz >= 0 only (real fields), kx wrapped as in fftfreq. """
import logging
import os
from collections import namedtuple
from typing import Tuple, Union

import jax.numpy as jnp
import numpy as np
from numpy.polynomial import chebyshev as cheb

from ddc_eigenvals.errors import DimensionMismatch, MissingInput
from ddc_eigenvals.interact_ddc import chebyshev as ch

Array = Union[np.ndarray, jnp.ndarray]

logger = logging.getLogger(__name__)

FlowState = namedtuple("FlowState", "u temp salt")


class FlowField:
  def __init__(
      self,
      Nx: int,
      Ny: int,
      Nz: int,
      Nd: int,
      Lx: float,
      Lz: float,
      a: float=-1.,
      b: float=1.,
      coeffs: Array=None
  ):
    if min(Nx, Ny, Nz, Nd) < 1:
      raise ValueError("FlowField sizes must be positive")
    if b <= a:
      raise ValueError("FlowField requires a < b")
    self.Nx = int(Nx)
    self.Ny = int(Ny)
    self.Nz = int(Nz)
    self.Nd = int(Nd)
    self.Lx = float(Lx)
    self.Lz = float(Lz)
    self.a = float(a)
    self.b = float(b)

    if coeffs is None:
      self.coeffs = jnp.zeros(self.shape, dtype=jnp.complex128)
    else:
      coeffs = jnp.asarray(coeffs, dtype=jnp.complex128)
      if coeffs.shape != self.shape:
        raise DimensionMismatch("coefficient array has shape " + str(coeffs.shape) +
                                ", expected " + str(self.shape))
      self.coeffs = coeffs

  @property
  def Mx(self) -> int:
    return self.Nx

  @property
  def Mz(self) -> int:
    return self.Nz // 2 + 1

  @property
  def shape(self) -> Tuple[int, int, int, int]:
    return (self.Mx, self.Ny, self.Mz, self.Nd)

  def kx_array(self) -> np.ndarray:
    return np.rint(np.fft.fftfreq(self.Nx, 1. / self.Nx)).astype(int)

  def kz_array(self) -> np.ndarray:
    return np.arange(self.Mz)

  def kxmax_dealiased(self) -> int:
    return self.Nx // 3 - 1

  def kzmax_dealiased(self) -> int:
    return self.Nz // 3 - 1

  def dealiased_mx(self) -> np.ndarray:
    return np.flatnonzero(np.abs(self.kx_array()) <= self.kxmax_dealiased())

  def dealiased_mz(self) -> np.ndarray:
    return np.flatnonzero(self.kz_array() <= self.kzmax_dealiased())

  def wavenumbers(self) -> Tuple[np.ndarray, np.ndarray]:
    """ Physical (alpha kx, gamma kz) for every (mx, mz), shape (Mx, Mz) """
    alpha = 2 * np.pi / self.Lx * self.kx_array()
    gamma = 2 * np.pi / self.Lz * self.kz_array()
    return np.meshgrid(alpha, gamma, indexing='ij')

  def congruent(
      self,
      other: 'FlowField'
  ) -> bool:
    """ Same discretisation and domain; Nd may differ """
    return ((self.Nx, self.Ny, self.Nz) == (other.Nx, other.Ny, other.Nz) and
            np.allclose([self.Lx, self.Lz, self.a, self.b],
                        [other.Lx, other.Lz, other.a, other.b]))

  def _check_compatible(
      self,
      other: 'FlowField'
  ):
    if not self.congruent(other) or self.Nd != other.Nd:
      raise DimensionMismatch("fields are not congruent: " + repr(self) + " vs " + repr(other))

  def new_with(
      self,
      coeffs: Array
  ) -> 'FlowField':
    return FlowField(self.Nx, self.Ny, self.Nz, self.Nd, self.Lx, self.Lz,
                     self.a, self.b, coeffs)

  def copy(self) -> 'FlowField':
    return self.new_with(self.coeffs)

  def zeros_like(
      self,
      Nd: int=None
  ) -> 'FlowField':
    Nd = self.Nd if Nd is None else Nd
    return FlowField(self.Nx, self.Ny, self.Nz, Nd, self.Lx, self.Lz, self.a, self.b)

  def set_to_zero(self):
    self.coeffs = jnp.zeros(self.shape, dtype=jnp.complex128)

  def cmplx(
      self,
      mx: int,
      n: int,
      mz: int,
      i: int
  ) -> complex:
    return complex(self.coeffs[mx, n, mz, i])

  def set_cmplx(
      self,
      mx: int,
      n: int,
      mz: int,
      i: int,
      value: complex
  ):
    self.coeffs = self.coeffs.at[mx, n, mz, i].set(value)

  def profile(
      self,
      mx: int,
      mz: int,
      i: int
  ) -> Array:
    """ Chebyshev coefficients of the (mx, mz) Fourier mode of component i """
    return self.coeffs[mx, :, mz, i]

  def __add__(self, other: 'FlowField') -> 'FlowField':
    self._check_compatible(other)
    return self.new_with(self.coeffs + other.coeffs)

  def __sub__(self, other: 'FlowField') -> 'FlowField':
    self._check_compatible(other)
    return self.new_with(self.coeffs - other.coeffs)

  def __mul__(self, scalar: float) -> 'FlowField':
    return self.new_with(scalar * self.coeffs)

  __rmul__ = __mul__

  def __neg__(self) -> 'FlowField':
    return self.new_with(-self.coeffs)

  def __repr__(self) -> str:
    return ("FlowField(Nx=%d, Ny=%d, Nz=%d, Nd=%d, Lx=%g, Lz=%g, a=%g, b=%g)" %
            (self.Nx, self.Ny, self.Nz, self.Nd, self.Lx, self.Lz, self.a, self.b))

  def diff_x(self) -> 'FlowField':
    alpha, _ = self.wavenumbers()
    return self.new_with(1j * alpha[:, None, :, None] * self.coeffs)

  def diff_z(self) -> 'FlowField':
    _, gamma = self.wavenumbers()
    return self.new_with(1j * gamma[:, None, :, None] * self.coeffs)

  def diff_y(self) -> 'FlowField':
    D = ch.diff_matrix(self.Ny) * (2. / (self.b - self.a))
    return self.new_with(jnp.einsum('mn,anzd->amzd', D, self.coeffs))

  def physical(self) -> np.ndarray:
    """ Values on the (x, Gauss-Lobatto y, z) grid, shape (Nx, Ny, Nz, Nd) """
    if self.Ny < 2:
      raise ValueError("physical evaluation needs Ny >= 2")
    yhat = np.cos(np.pi * np.arange(self.Ny) / (self.Ny - 1))
    V = cheb.chebvander(yhat, self.Ny - 1)
    f = jnp.einsum('jn,anzd->ajzd', V, self.coeffs)
    f = jnp.fft.ifft(f, axis=0) * self.Nx
    f = jnp.fft.irfft(f, n=self.Nz, axis=2) * self.Nz
    return np.asarray(f)

  def save(
      self,
      filename: str
  ):
    np.savez(filename, coeffs=np.asarray(self.coeffs),
             Nx=self.Nx, Ny=self.Ny, Nz=self.Nz, Nd=self.Nd,
             Lx=self.Lx, Lz=self.Lz, a=self.a, b=self.b)

  @classmethod
  def load(
      cls,
      filename: str
  ) -> 'FlowField':
    if not filename.endswith('.npz') and os.path.exists(filename + '.npz'):
      filename = filename + '.npz'
    if not os.path.exists(filename):
      raise MissingInput("flow field file " + filename + " does not exist")
    logger.info("reading %s", filename)
    with np.load(filename) as data:
      return cls(int(data['Nx']), int(data['Ny']), int(data['Nz']), int(data['Nd']),
                 float(data['Lx']), float(data['Lz']), float(data['a']), float(data['b']),
                 data['coeffs'])


def _mode_weights(
    field: FlowField
) -> np.ndarray:
  """ kz > 0 modes stand in for their kz < 0 conjugates too """
  w = 2. * np.ones(field.Mz)
  w[0] = 1.
  if field.Nz % 2 == 0 and field.Mz > 1:
    w[-1] = 1.
  return w


def L2IP(
    f: FlowField,
    g: FlowField
) -> float:
  """ Volume-averaged inner product 1/V int f . g """
  f._check_compatible(g)
  G = ch.gram_matrix(f.Ny) / 2.
  per_mode = jnp.einsum('anzd,nm,amzd->az', jnp.conj(f.coeffs), G, g.coeffs).real
  return float(jnp.sum(per_mode * _mode_weights(f)[None, :]))


def L2Norm2(
    f: FlowField
) -> float:
  return L2IP(f, f)


def L2Norm(
    f: FlowField
) -> float:
  return float(np.sqrt(max(L2Norm2(f), 0.)))


def curl(
    u: FlowField
) -> FlowField:
  if u.Nd != 3:
    raise DimensionMismatch("curl needs a 3-component field, got Nd=" + str(u.Nd))
  dx = u.diff_x().coeffs
  dy = u.diff_y().coeffs
  dz = u.diff_z().coeffs
  omega = jnp.stack([dy[..., 2] - dz[..., 1],
                     dz[..., 0] - dx[..., 2],
                     dx[..., 1] - dy[..., 0]], axis=-1)
  return u.new_with(omega)


def flow_state(
    u: FlowField,
    temp: FlowField,
    salt: FlowField
) -> FlowState:
  """ Bundle (u, temp, salt), checking they share one discretisation """
  if u.Nd != 3:
    raise DimensionMismatch("velocity field must have Nd=3, got Nd=" + str(u.Nd))
  for name, s in (('temperature', temp), ('salinity', salt)):
    if s.Nd != 1:
      raise DimensionMismatch(name + " field must have Nd=1, got Nd=" + str(s.Nd))
    if not u.congruent(s):
      raise DimensionMismatch(name + " field " + repr(s) + " is not congruent with " + repr(u))
  return FlowState(u, temp, salt)
