"""Tests for run parameters and their YAML snapshots."""
import os

import pytest
import yaml

from ddc_eigenvals.errors import MissingInput
from ddc_eigenvals.interact_ddc.symmetry import fieldSymmetry
from ddc_eigenvals.run_config import (
    BULK_VELOCITY, DDCFlags, EigenvalsFlags, TimeStep, findEigenvalsOptions)


class TestDDCFlags:

  def test_yaml_round_trip(self, tmp_path):
    flags = DDCFlags(T=12.5, constraint=BULK_VELOCITY,
                     symmetries=(fieldSymmetry(1, 1, -1, -1, 0.5, 0.5),),
                     saltsymmetries=(fieldSymmetry(-1, 1, 1, 1, 0., 0.25),),
                     kappa_s=3e-4, Uadv=0.75)
    path = flags.save(str(tmp_path))
    assert os.path.basename(path) == 'ddcflags.yaml'
    assert DDCFlags.load(path) == flags

  def test_symmetries_stored_as_text(self, tmp_path):
    flags = DDCFlags(symmetries=(fieldSymmetry(1, 1, -1, -1, 0.5, 0.5),))
    with open(flags.save(str(tmp_path))) as f:
      data = yaml.safe_load(f)
    assert data['symmetries'] == ['1 1 -1 -1 0.5 0.5']

  def test_symmetry_lists_become_tuples(self):
    flags = DDCFlags(symmetries=[fieldSymmetry()])
    assert isinstance(flags.symmetries, tuple)

  def test_invalid_constraint(self):
    with pytest.raises(ValueError):
      DDCFlags(constraint='Vorticity')

  def test_invalid_period(self):
    with pytest.raises(ValueError):
      DDCFlags(T=0.)

  def test_missing_file(self, tmp_path):
    with pytest.raises(MissingInput):
      DDCFlags.load(str(tmp_path / 'absent.yaml'))


class TestTimeStep:

  def test_adjust_for_T(self):
    dt = TimeStep(dt=0.03, dtmin=1e-3, dtmax=0.05)
    adjusted = dt.adjust_for_T(1.)
    assert adjusted.dt == pytest.approx(1. / 34.)
    assert adjusted.n_steps(1.) == 34
    assert dt.dt == 0.03

  def test_exact_fit_unchanged(self):
    assert TimeStep(dt=0.02).adjust_for_T(1.).dt == pytest.approx(0.02)

  def test_period_below_dtmin(self):
    with pytest.raises(ValueError):
      TimeStep(dt=0.02, dtmin=1e-4).adjust_for_T(1e-5)

  def test_invalid_bounds(self):
    with pytest.raises(ValueError):
      TimeStep(dt=0.1, dtmin=1e-4, dtmax=0.05)

  def test_from_flags(self):
    dt = TimeStep.from_flags(DDCFlags(dt=0.01, variable_dt=True))
    assert dt.dt == 0.01 and dt.variable


class TestEigenvalsFlags:

  def test_yaml_round_trip(self, tmp_path):
    flags = EigenvalsFlags(Neig=6, Narnoldi=40, tol=1e-6, Nsave=1, outdir='out')
    assert EigenvalsFlags.load(flags.save(str(tmp_path))) == flags

  def test_invalid_neig(self):
    with pytest.raises(ValueError):
      EigenvalsFlags(Neig=0)


class TestOptions:

  def test_decay(self):
    assert findEigenvalsOptions(smoothness=0.4).decay == pytest.approx(0.6)

  @pytest.mark.parametrize("smoothness", [0., 1., 1.5])
  def test_invalid_smoothness(self, smoothness):
    with pytest.raises(ValueError):
      findEigenvalsOptions(smoothness=smoothness)

  def test_invalid_eps(self):
    with pytest.raises(ValueError):
      findEigenvalsOptions(eps_du=0.)

  def test_yaml_round_trip(self, tmp_path):
    options = findEigenvalsOptions(poincare=True, sigma='1 1 1 1 0.5 0', seed=3, eps_du=1e-6)
    assert findEigenvalsOptions.load(options.save(str(tmp_path))) == options
