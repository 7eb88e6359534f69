"""Tests for channel symmetries and projection onto their invariant subspace."""
import numpy as np
import pytest

from ddc_eigenvals.errors import MissingInput
from ddc_eigenvals.interact_ddc.symmetry import (
    fieldSymmetry, generate_group, load_symmetry_list, parse_symmetry_list, project)

shift_x = fieldSymmetry(1, 1, 1, 1, 0.5, 0.)
shift_reflect = fieldSymmetry(1, 1, -1, -1, 0.5, 0.5)
reflect_x = fieldSymmetry(1, -1, 1, 1, 0., 0.)


class TestParsing:

  def test_string_round_trip(self):
    sigma = fieldSymmetry.from_string("1 -1 1 -1 0.25 0.5")
    assert (sigma.s, sigma.sx, sigma.sy, sigma.sz) == (1, -1, 1, -1)
    assert fieldSymmetry.from_string(str(sigma)) == sigma

  def test_bad_sign(self):
    with pytest.raises(ValueError):
      fieldSymmetry(2, 1, 1, 1, 0., 0.)

  def test_bad_token_count(self):
    with pytest.raises(ValueError):
      fieldSymmetry.from_string("1 1 1 0.5")

  def test_list_with_count(self):
    symmetries = parse_symmetry_list(["% 2", "1 1 1 1 0.5 0", "1 1 -1 -1 0.5 0.5"])
    assert symmetries == (shift_x, shift_reflect)

  def test_list_count_mismatch(self):
    with pytest.raises(ValueError, match="declares 3"):
      parse_symmetry_list(["% 3", "1 1 1 1 0.5 0"])

  def test_file(self, tmp_path):
    path = tmp_path / "symms.asc"
    path.write_text("# generators\n% 1\n1 1 -1 -1 0.5 0.5\n")
    assert load_symmetry_list(str(path)) == (shift_reflect,)
    assert fieldSymmetry.from_file(str(path)) == shift_reflect

  def test_missing_file(self, tmp_path):
    with pytest.raises(MissingInput):
      load_symmetry_list(str(tmp_path / "absent.asc"))


class TestGroup:

  def test_composition(self):
    assert (shift_x * shift_x).is_identity()
    assert shift_reflect * shift_reflect == fieldSymmetry(1, 1, 1, 1, 0., 0.)

  def test_group_orders(self):
    assert len(generate_group([shift_x])) == 2
    assert len(generate_group([shift_x, reflect_x])) == 4

  def test_irrational_shift_does_not_close(self):
    with pytest.raises(ValueError):
      generate_group([fieldSymmetry(1, 1, 1, 1, np.sqrt(2.) - 1., 0.)])


class TestAction:

  def test_half_shift_flips_odd_modes(self, single_mode):
    temp = single_mode()
    shifted = shift_x(temp)
    assert shifted.cmplx(1, 0, 0, 0) == pytest.approx(-0.5)
    assert shifted.cmplx(temp.Nx - 1, 0, 0, 0) == pytest.approx(-0.5)

  def test_z_reflection_of_scalar(self, make_field):
    temp = make_field(1)
    temp.set_cmplx(1, 0, 1, 0, 1. + 2.j)
    reflected = fieldSymmetry(1, 1, 1, -1, 0., 0.)(temp)
    # f(x, -z): the (1, 1) mode moves to (-1, -1), stored as conj at (-1, 1)
    assert reflected.cmplx(temp.Nx - 1, 0, 1, 0) == pytest.approx(1. - 2.j)
    assert reflected.cmplx(1, 0, 1, 0) == pytest.approx(0.)

  def test_wall_reflection_signs(self, make_field):
    u = make_field(3)
    u.set_cmplx(0, 1, 0, 0, 1.)
    u.set_cmplx(0, 2, 0, 1, 1.)
    reflected = fieldSymmetry(1, 1, -1, 1, 0., 0.)(u)
    # u(-y) flips odd Chebyshev modes; v -> -v(-y) flips even ones
    assert reflected.cmplx(0, 1, 0, 0) == pytest.approx(-1.)
    assert reflected.cmplx(0, 2, 0, 1) == pytest.approx(-1.)


class TestProjection:

  @pytest.mark.parametrize("symmetries", [
      [shift_x],
      [shift_reflect],
      [shift_x, reflect_x],
  ])
  def test_idempotent(self, random_field, symmetries):
    u = random_field(3)
    once = project(symmetries, u)
    twice = project(symmetries, once)
    np.testing.assert_allclose(np.asarray(twice.coeffs), np.asarray(once.coeffs), atol=1e-14)

  def test_result_is_invariant(self, random_field):
    temp = random_field(1)
    projected = project([shift_reflect], temp)
    np.testing.assert_allclose(np.asarray(shift_reflect(projected).coeffs),
                               np.asarray(projected.coeffs), atol=1e-14)

  def test_empty_list_is_identity(self, random_field):
    u = random_field(3)
    np.testing.assert_array_equal(np.asarray(project([], u).coeffs), np.asarray(u.coeffs))

  def test_half_shift_keeps_even_kx(self, random_field):
    u = random_field(3)
    projected = np.asarray(project([shift_x], u).coeffs)
    np.testing.assert_allclose(projected[1], 0., atol=1e-14)
    np.testing.assert_allclose(projected[u.Nx - 1], 0., atol=1e-14)
    np.testing.assert_allclose(projected[0], np.asarray(u.coeffs)[0])
