""" Run parameters: created once at startup, read-only afterwards.
    Every class round-trips through YAML for the run snapshot. """
import dataclasses
import logging
import math
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple

import yaml

from ddc_eigenvals.errors import MissingInput
from ddc_eigenvals.interact_ddc.symmetry import fieldSymmetry, parse_symmetry_list

logger = logging.getLogger(__name__)

PRESSURE_GRADIENT = 'PressureGradient'
BULK_VELOCITY = 'BulkVelocity'
CONSTRAINTS = (PRESSURE_GRADIENT, BULK_VELOCITY)

_symmetry_fields = ('symmetries', 'tempsymmetries', 'saltsymmetries')


def _write_yaml(
    data: Mapping[str, Any],
    directory: str,
    filename: str
) -> str:
  os.makedirs(directory, exist_ok=True)
  path = os.path.join(directory, filename)
  with open(path, 'w', encoding='utf-8') as handle:
    yaml.safe_dump(dict(data), handle, default_flow_style=False, sort_keys=False)
  logger.info("wrote %s", path)
  return path


def _read_yaml(
    path: str
) -> Dict[str, Any]:
  if not os.path.exists(path):
    raise MissingInput("configuration file " + path + " does not exist")
  with open(path, 'r', encoding='utf-8') as handle:
    return yaml.safe_load(handle) or {}


@dataclass(frozen=True)
class DDCFlags:
  """ Physical and integration parameters of a double-diffusive channel run.
      nu, kappa_t, kappa_s and Uadv parametrise the reference integrator. """
  T: float = 10.
  dt: float = 0.02
  dtmin: float = 1e-4
  dtmax: float = 0.05
  CFLmin: float = 0.4
  CFLmax: float = 0.6
  variable_dt: bool = False
  constraint: str = PRESSURE_GRADIENT
  symmetries: Tuple[fieldSymmetry, ...] = ()
  tempsymmetries: Tuple[fieldSymmetry, ...] = ()
  saltsymmetries: Tuple[fieldSymmetry, ...] = ()
  nu: float = 1e-2
  kappa_t: float = 1e-2
  kappa_s: float = 1e-3
  Uadv: float = 0.

  def __post_init__(self):
    if self.T <= 0.:
      raise ValueError("integration period T must be positive, got " + str(self.T))
    if self.constraint not in CONSTRAINTS:
      raise ValueError("constraint must be one of " + str(CONSTRAINTS) + ", got " +
                       repr(self.constraint))
    for name in _symmetry_fields:
      object.__setattr__(self, name, tuple(getattr(self, name)))

  def to_dict(self) -> Dict[str, Any]:
    data = dataclasses.asdict(self)
    for name in _symmetry_fields:
      data[name] = [str(s) for s in getattr(self, name)]
    return data

  @classmethod
  def from_dict(
      cls,
      data: Mapping[str, Any]
  ) -> 'DDCFlags':
    data = dict(data)
    for name in _symmetry_fields:
      if name in data:
        data[name] = parse_symmetry_list(data[name] or [])
    return cls(**data)

  def save(
      self,
      directory: str
  ) -> str:
    return _write_yaml(self.to_dict(), directory, 'ddcflags.yaml')

  @classmethod
  def load(
      cls,
      path: str
  ) -> 'DDCFlags':
    return cls.from_dict(_read_yaml(path))


@dataclass(frozen=True)
class TimeStep:
  dt: float = 0.02
  dtmin: float = 1e-4
  dtmax: float = 0.05
  CFLmin: float = 0.4
  CFLmax: float = 0.6
  variable: bool = False

  def __post_init__(self):
    if not (0. < self.dtmin <= self.dt <= self.dtmax):
      raise ValueError("time step must satisfy 0 < dtmin <= dt <= dtmax, got " +
                       str((self.dtmin, self.dt, self.dtmax)))
    if self.CFLmin > self.CFLmax:
      raise ValueError("CFLmin exceeds CFLmax")

  @classmethod
  def from_flags(
      cls,
      flags: DDCFlags
  ) -> 'TimeStep':
    return cls(flags.dt, flags.dtmin, flags.dtmax, flags.CFLmin, flags.CFLmax, flags.variable_dt)

  def n_steps(
      self,
      T: float
  ) -> int:
    return max(1, int(math.ceil(T / self.dt - 1e-9)))

  def adjust_for_T(
      self,
      T: float
  ) -> 'TimeStep':
    """ Largest dt <= current dt that divides T exactly """
    n = self.n_steps(T)
    dt_exact = T / n
    if dt_exact < self.dtmin:
      raise ValueError("cannot fit T = " + str(T) + " with dt >= dtmin = " + str(self.dtmin))
    return dataclasses.replace(self, dt=dt_exact)


@dataclass(frozen=True)
class EigenvalsFlags:
  Neig: int = 10
  Narnoldi: int = 100
  tol: float = 1e-8
  Nsave: int = 2
  outdir: str = 'eigenvals'

  def __post_init__(self):
    if self.Neig < 1:
      raise ValueError("Neig must be at least 1")
    if self.Narnoldi < 1:
      raise ValueError("Narnoldi must be at least 1")

  def save(
      self,
      directory: str
  ) -> str:
    return _write_yaml(dataclasses.asdict(self), directory, 'eigenflags.yaml')

  @classmethod
  def load(
      cls,
      path: str
  ) -> 'EigenvalsFlags':
    return cls(**_read_yaml(path))


@dataclass(frozen=True)
class findEigenvalsOptions:
  """ Program options of a single eigenvalue run """
  poincare: bool = False
  sigma: str = ''
  seed: int = 1
  smoothness: float = 0.4
  eps_du: float = 1e-7
  duname: str = ''
  dtname: str = ''
  dsname: str = ''
  nproc0: int = 0
  nproc1: int = 0

  def __post_init__(self):
    if not (0. < self.smoothness < 1.):
      raise ValueError("smoothness must lie in (0, 1), got " + str(self.smoothness))
    if self.eps_du <= 0.:
      raise ValueError("eps_du must be positive, got " + str(self.eps_du))

  @property
  def decay(self) -> float:
    return 1. - self.smoothness

  def save(
      self,
      directory: str
  ) -> str:
    return _write_yaml(dataclasses.asdict(self), directory, 'findeigenvals.yaml')

  @classmethod
  def load(
      cls,
      path: str
  ) -> 'findEigenvalsOptions':
    return cls(**_read_yaml(path))
