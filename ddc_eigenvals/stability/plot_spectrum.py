""" Floquet multipliers against the unit circle """
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np


def plot_spectrum(
    multipliers: np.ndarray,
    filename: str,
    title: str=None
) -> str:
  theta = np.linspace(0., 2. * np.pi, 361)
  fig, ax = plt.subplots(figsize=(5, 5))
  ax.plot(np.cos(theta), np.sin(theta), 'k--', lw=0.8)
  unstable = (np.abs(multipliers) > 1.).astype(float)
  ax.scatter(multipliers.real, multipliers.imag, c=unstable, cmap='coolwarm', vmin=0., vmax=1.,
             s=20, zorder=3)
  ax.set_aspect('equal')
  ax.set_xlabel(r'Re $\Lambda$')
  ax.set_ylabel(r'Im $\Lambda$')
  if title is not None:
    ax.set_title(title)
  fig.savefig(filename, bbox_inches="tight")
  plt.close(fig)
  return filename
