""" Discrete symmetries of the channel and projection onto their invariant subspace.

    A symmetry (s, sx, sy, sz, ax, az) maps
      u(x, y, z) -> s (sx u, sy v, sz w)(sx x + ax Lx, sy y, sz z + az Lz)
    and a scalar field f -> s f(...). Text form is 's sx sy sz ax az'. """
import logging
import os
from typing import List, Sequence, Tuple

import jax.numpy as jnp
import numpy as np

from ddc_eigenvals.errors import MissingInput
from ddc_eigenvals.interact_ddc.flow_field import FlowField

logger = logging.getLogger(__name__)

SymmetryList = Tuple['fieldSymmetry', ...]

_shift_tol = 1e-12


def _wrap(shift: float) -> float:
  shift = shift % 1.
  return 0. if abs(shift - 1.) < _shift_tol else shift


def _same_shift(a: float, b: float) -> bool:
  d = abs(_wrap(a) - _wrap(b))
  return min(d, 1. - d) < _shift_tol


class fieldSymmetry:
  def __init__(
      self,
      s: int=1,
      sx: int=1,
      sy: int=1,
      sz: int=1,
      ax: float=0.,
      az: float=0.
  ):
    for sign in (s, sx, sy, sz):
      if sign not in (1, -1):
        raise ValueError("symmetry signs must be +1 or -1, got " + str((s, sx, sy, sz)))
    self.s = int(s)
    self.sx = int(sx)
    self.sy = int(sy)
    self.sz = int(sz)
    self.ax = _wrap(float(ax))
    self.az = _wrap(float(az))

  @classmethod
  def from_string(
      cls,
      line: str
  ) -> 'fieldSymmetry':
    tokens = line.split()
    if len(tokens) != 6:
      raise ValueError("expected 's sx sy sz ax az', got '" + line.strip() + "'")
    s, sx, sy, sz = (int(float(t)) for t in tokens[:4])
    return cls(s, sx, sy, sz, float(tokens[4]), float(tokens[5]))

  @classmethod
  def from_file(
      cls,
      filename: str
  ) -> 'fieldSymmetry':
    symmetries = parse_symmetry_list(_read_lines(filename))
    if len(symmetries) != 1:
      raise ValueError("expected exactly one symmetry in " + filename + ", found " +
                       str(len(symmetries)))
    return symmetries[0]

  def __str__(self) -> str:
    return "%d %d %d %d %.17g %.17g" % (self.s, self.sx, self.sy, self.sz, self.ax, self.az)

  def __repr__(self) -> str:
    return "fieldSymmetry(" + str(self) + ")"

  def __eq__(self, other) -> bool:
    if not isinstance(other, fieldSymmetry):
      return NotImplemented
    return ((self.s, self.sx, self.sy, self.sz) == (other.s, other.sx, other.sy, other.sz) and
            _same_shift(self.ax, other.ax) and _same_shift(self.az, other.az))

  def __hash__(self):
    return hash((self.s, self.sx, self.sy, self.sz))

  def __mul__(
      self,
      other: 'fieldSymmetry'
  ) -> 'fieldSymmetry':
    """ (self * other)(u) == self(other(u)) """
    return fieldSymmetry(self.s * other.s, self.sx * other.sx, self.sy * other.sy,
                         self.sz * other.sz,
                         other.ax + other.sx * self.ax,
                         other.az + other.sz * self.az)

  def is_identity(self) -> bool:
    return self == fieldSymmetry()

  def component_signs(
      self,
      Nd: int
  ) -> np.ndarray:
    if Nd == 3:
      return self.s * np.array([self.sx, self.sy, self.sz])
    return self.s * np.ones(Nd)

  def __call__(
      self,
      field: FlowField
  ) -> FlowField:
    """ Apply to the spectral coefficients of a field """
    kx = field.kx_array()
    kz = field.kz_array()
    kx_src = self.sx * kx
    kz_src = self.sz * kz

    if self.sz == 1:
      src = field.coeffs[kx_src % field.Nx]
    else:
      # c(kx, -kz) = conj(c(-kx, kz)) for real fields
      src = jnp.conj(field.coeffs[(-kx_src) % field.Nx])

    phase = np.exp(2j * np.pi * (kx_src[:, None] * self.ax + kz_src[None, :] * self.az))
    cheb_sign = float(self.sy) ** np.arange(field.Ny)
    factor = (phase[:, None, :, None] *
              cheb_sign[None, :, None, None] *
              self.component_signs(field.Nd)[None, None, None, :])
    return field.new_with(factor * src)


def _read_lines(
    filename: str
) -> List[str]:
  if not os.path.exists(filename):
    raise MissingInput("symmetry file " + filename + " does not exist")
  with open(filename, 'r') as f:
    return [line.strip() for line in f if line.strip() and not line.lstrip().startswith('#')]


def parse_symmetry_list(
    lines: Sequence[str]
) -> SymmetryList:
  """ Optional leading '% N' count line, then one symmetry per line """
  lines = [line for line in lines if line.strip()]
  count = None
  if len(lines) > 0 and lines[0].startswith('%'):
    count = int(lines[0][1:].split()[0])
    lines = lines[1:]
  symmetries = tuple(fieldSymmetry.from_string(line) for line in lines)
  if count is not None and count != len(symmetries):
    raise ValueError("symmetry list declares " + str(count) + " symmetries but lists " +
                     str(len(symmetries)))
  return symmetries


def load_symmetry_list(
    filename: str
) -> SymmetryList:
  return parse_symmetry_list(_read_lines(filename))


def generate_group(
    symmetries: Sequence[fieldSymmetry],
    max_order: int=1024
) -> List[fieldSymmetry]:
  """ All elements of the finite group generated by the given symmetries """
  group = [fieldSymmetry()]
  frontier = [fieldSymmetry()]
  while frontier:
    new_elements = []
    for g in frontier:
      for generator in symmetries:
        h = generator * g
        if h not in group and h not in new_elements:
          new_elements.append(h)
    group.extend(new_elements)
    frontier = new_elements
    if len(group) > max_order:
      raise ValueError("symmetries do not generate a finite group of order <= " +
                       str(max_order) + "; check the shifts ax, az")
  return group


def project(
    symmetries: Sequence[fieldSymmetry],
    field: FlowField
) -> FlowField:
  """ Orthogonal projection onto the subspace invariant under the generated group """
  if len(symmetries) == 0:
    return field.copy()
  group = generate_group(symmetries)
  logger.debug("projecting onto subspace of group of order %d", len(group))
  coeffs = sum(g(field).coeffs for g in group) / len(group)
  return field.new_with(coeffs)
