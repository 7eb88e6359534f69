"""Tests for random perturbations and rescaling to a target norm."""
import jax
import numpy as np
import pytest

from ddc_eigenvals.interact_ddc import chebyshev as ch
from ddc_eigenvals.interact_ddc.flow_field import L2Norm
from ddc_eigenvals.stability.perturbations import add_perturbations, rescale_to_eps


@pytest.fixture
def perturbed_velocity(make_field):
  u = make_field(3)
  return add_perturbations(u, u.kxmax_dealiased(), u.kzmax_dealiased(), 1.0, 0.6, True,
                           jax.random.PRNGKey(1))


class TestRescale:

  @pytest.mark.parametrize("eps", [1e-7, 1e-3, 2.5])
  def test_norm_equals_eps(self, random_field, eps):
    f = random_field(1) * 1e4
    assert L2Norm(rescale_to_eps(f, eps)) == pytest.approx(eps, rel=1e-12)

  def test_zero_field(self, make_field):
    with pytest.raises(ValueError):
      rescale_to_eps(make_field(3), 1e-7)


class TestPerturbations:

  def test_deterministic_in_key(self, make_field):
    temp = make_field(1)
    a = add_perturbations(temp, 1, 1, 1.0, 0.6, True, jax.random.PRNGKey(3))
    b = add_perturbations(temp, 1, 1, 1.0, 0.6, True, jax.random.PRNGKey(3))
    c = add_perturbations(temp, 1, 1, 1.0, 0.6, True, jax.random.PRNGKey(4))
    np.testing.assert_array_equal(np.asarray(a.coeffs), np.asarray(b.coeffs))
    assert not np.allclose(np.asarray(a.coeffs), np.asarray(c.coeffs))

  def test_adds_to_field(self, random_field):
    temp = random_field(1)
    zero = temp.zeros_like()
    key = jax.random.PRNGKey(5)
    total = add_perturbations(temp, 1, 1, 1.0, 0.6, True, key)
    alone = add_perturbations(zero, 1, 1, 1.0, 0.6, True, key)
    np.testing.assert_allclose(np.asarray(total.coeffs),
                               np.asarray(temp.coeffs) + np.asarray(alone.coeffs))

  def test_band_limited(self, perturbed_velocity):
    c = np.asarray(perturbed_velocity.coeffs)
    kx = np.abs(perturbed_velocity.kx_array())
    assert not np.any(c[kx > 1])
    assert not np.any(c[:, :, 2:, :])
    assert np.any(c[kx == 1])

  def test_mean_mode_optional(self, make_field):
    temp = make_field(1)
    without = add_perturbations(temp, 1, 1, 1.0, 0.6, False, jax.random.PRNGKey(1))
    with_mean = add_perturbations(temp, 1, 1, 1.0, 0.6, True, jax.random.PRNGKey(1))
    assert not np.any(np.asarray(without.profile(0, 0, 0)))
    assert np.any(np.asarray(with_mean.profile(0, 0, 0)))

  def test_wall_values_vanish(self, perturbed_velocity):
    c = np.asarray(perturbed_velocity.coeffs)
    walls = np.einsum('wn,anzd->wazd', ch.wall_matrix(c.shape[1]), c)
    np.testing.assert_allclose(walls, 0., atol=1e-12)

  def test_wall_normal_slope_vanishes(self, perturbed_velocity):
    dvdy = np.asarray(perturbed_velocity.diff_y().coeffs)[..., 1]
    walls = np.einsum('wn,anz->waz', ch.wall_matrix(dvdy.shape[1]), dvdy)
    np.testing.assert_allclose(walls, 0., atol=1e-12)

  def test_divergence_free(self, perturbed_velocity):
    u = perturbed_velocity
    div = (np.asarray(u.diff_x().coeffs)[..., 0] +
           np.asarray(u.diff_y().coeffs)[..., 1] +
           np.asarray(u.diff_z().coeffs)[..., 2])
    np.testing.assert_allclose(div, 0., atol=1e-12)

  def test_real_field_symmetry(self, perturbed_velocity):
    c = np.asarray(perturbed_velocity.coeffs)
    Nx = perturbed_velocity.Nx
    np.testing.assert_allclose(c[Nx - 1, :, 0, :], np.conj(c[1, :, 0, :]))
    np.testing.assert_array_equal(c[0, :, 0, :].imag, 0.)

  def test_linear_in_magnitude(self, make_field):
    temp = make_field(1)
    key = jax.random.PRNGKey(2)
    once = add_perturbations(temp, 1, 1, 1.0, 0.6, True, key)
    twice = add_perturbations(temp, 1, 1, 2.0, 0.6, True, key)
    np.testing.assert_allclose(np.asarray(twice.coeffs), 2. * np.asarray(once.coeffs), rtol=1e-14)

  def test_bad_decay(self, make_field):
    with pytest.raises(ValueError):
      add_perturbations(make_field(1), 1, 1, 1.0, 1.5, True, jax.random.PRNGKey(0))
