""" Eigenvalues of equilibria, travelling waves and periodic orbits of
    double-diffusive channel flow via Jacobian-free Arnoldi iteration """
import jax
jax.config.update("jax_enable_x64", True)

__version__ = "0.1.0"
