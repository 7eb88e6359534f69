""" Scalar diagnostics of a flow state: CFL number, energy input, dissipation """
import numpy as np

from ddc_eigenvals.interact_ddc import chebyshev as ch
from ddc_eigenvals.interact_ddc.flow_field import FlowField, FlowState, L2Norm2, curl


def cfl_number(
    u: FlowField,
    dt: float,
    Uadv: float=0.
) -> float:
  """ dt max(|u + Uadv|/dx + |v|/dy + |w|/dz) on the collocation grid """
  vel = u.physical().real
  dx = u.Lx / u.Nx
  dz = u.Lz / u.Nz
  y = ch.chebyshev_points(u.Ny, u.a, u.b)
  dy = np.min(np.abs(np.diff(y)))
  speed = (np.abs(vel[..., 0] + Uadv) / dx +
           np.abs(vel[..., 1]) / dy +
           np.abs(vel[..., 2]) / dz)
  return float(dt * np.max(speed))


def energy_input(
    u: FlowField
) -> float:
  """ Mean wall shear of the streamwise mean flow, (du/dy|a + du/dy|b) / 2 """
  dudy = ch.diff(u.profile(0, 0, 0), u.a, u.b)
  return float(0.5 * (ch.eval_a(dudy) + ch.eval_b(dudy)).real)


def dissipation(
    u: FlowField
) -> float:
  return L2Norm2(curl(u))


class DragDissipation:
  """ Poincare condition h(u) = I - D; zero on the laminar shear flow u = y """
  def __call__(
      self,
      state: FlowState
  ) -> float:
    return energy_input(state.u) - dissipation(state.u)

  def __repr__(self) -> str:
    return "DragDissipation()"
