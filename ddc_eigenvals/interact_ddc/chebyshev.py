""" Chebyshev coefficient profiles on [a, b]: derivatives, wall values, means """
from functools import lru_cache
from typing import Union

import jax.numpy as jnp
import numpy as np
from numpy.polynomial import chebyshev as cheb

Array = Union[np.ndarray, jnp.ndarray]


@lru_cache(maxsize=None)
def diff_matrix(
    Ny: int
) -> np.ndarray:
  """ d/dyhat acting on coefficients, yhat in [-1, 1]. Square, last row zero. """
  D = cheb.chebder(np.eye(Ny), axis=0)
  return np.vstack([D, np.zeros((1, Ny))])


@lru_cache(maxsize=None)
def gram_matrix(
    Ny: int
) -> np.ndarray:
  """ G_mn = int_{-1}^{1} T_m T_n dyhat """
  m = np.arange(Ny)[:, None]
  n = np.arange(Ny)[None, :]
  even = (m + n) % 2 == 0
  with np.errstate(divide='ignore'):
    return np.where(even, 1. / (1. - (m + n) ** 2) + 1. / (1. - (m - n) ** 2), 0.)


@lru_cache(maxsize=None)
def wall_matrix(
    Ny: int
) -> np.ndarray:
  """ rows: T_n(yhat=+1), T_n(yhat=-1) """
  n = np.arange(Ny)
  return np.vstack([np.ones(Ny), (-1.) ** n])


@lru_cache(maxsize=None)
def dirichlet_projector(
    Ny: int
) -> np.ndarray:
  """ Removes wall values by correcting the T_0, T_1 coefficients. """
  B = wall_matrix(Ny)
  A = B[:, :2]
  E = np.zeros((Ny, 2))
  E[:2, :2] = np.eye(2)
  return np.eye(Ny) - E @ np.linalg.solve(A, B)


@lru_cache(maxsize=None)
def clamped_projector(
    Ny: int
) -> np.ndarray:
  """ Removes wall values and wall slopes by correcting T_0 ... T_3. """
  n = np.arange(Ny)
  B = np.vstack([np.ones(Ny), (-1.) ** n, n ** 2., (-1.) ** (n + 1) * n ** 2.])
  A = B[:, :4]
  E = np.zeros((Ny, 4))
  E[:4, :4] = np.eye(4)
  return np.eye(Ny) - E @ np.linalg.solve(A, B)


def chebyshev_points(
    Ny: int,
    a: float=-1.,
    b: float=1.
) -> np.ndarray:
  """ Gauss-Lobatto points, y_0 = b down to y_{Ny-1} = a """
  yhat = np.cos(np.pi * np.arange(Ny) / (Ny - 1))
  return 0.5 * (b + a) + 0.5 * (b - a) * yhat


def diff(
    profile: Array,
    a: float=-1.,
    b: float=1.
) -> Array:
  """ d/dy of a profile on [a, b]; profile axis 0 is the Chebyshev index """
  D = diff_matrix(profile.shape[0]) * (2. / (b - a))
  return jnp.tensordot(D, profile, axes=(1, 0))


def eval_a(
    profile: Array
) -> Array:
  return jnp.tensordot(wall_matrix(profile.shape[0])[1], profile, axes=(0, 0))


def eval_b(
    profile: Array
) -> Array:
  return jnp.tensordot(wall_matrix(profile.shape[0])[0], profile, axes=(0, 0))


def mean(
    profile: Array
) -> Array:
  """ 1/(b-a) int_a^b f dy """
  Ny = profile.shape[0]
  n = np.arange(Ny)
  with np.errstate(divide='ignore'):
    weights = np.where(n % 2 == 0, 1. / (1. - n ** 2), 0.)
  return jnp.tensordot(weights, profile, axes=(0, 0))
