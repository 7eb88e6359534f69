""" Find eigenvalues of an equilibrium, traveling wave or periodic orbit of
    double-diffusive channel flow, the solution u, temp, salt of
    sigma f^T(u, temp, salt) - (u, temp, salt) = 0. """
import argparse
import dataclasses
import importlib.util
import logging
import os
from typing import Optional, Sequence

from ddc_eigenvals.errors import DDCEigenError
from ddc_eigenvals.interact_ddc.flow_field import FlowField
from ddc_eigenvals.interact_ddc.symmetry import fieldSymmetry, load_symmetry_list
from ddc_eigenvals.parallel import processGrid, rankFilter
from ddc_eigenvals.run_config import CONSTRAINTS, DDCFlags, EigenvalsFlags, findEigenvalsOptions
from ddc_eigenvals.stability.find_eigenvals import eigenvalsRun

logger = logging.getLogger(__name__)

# argparse dest -> DDCFlags field, for flags that override --ddcflags
_ddcflag_args = {
    'T': 'T', 'dt': 'dt', 'dtmin': 'dtmin', 'dtmax': 'dtmax',
    'CFLmin': 'CFLmin', 'CFLmax': 'CFLmax', 'variabledt': 'variable_dt',
    'constraint': 'constraint', 'nu': 'nu', 'kappat': 'kappa_t', 'kappas': 'kappa_s',
    'Uadv': 'Uadv',
}
_symmetry_args = {'symms': 'symmetries', 'tsymms': 'tempsymmetries', 'ssymms': 'saltsymmetries'}


def _parse_args(argv: Optional[Sequence[str]]=None) -> argparse.Namespace:
  parser = argparse.ArgumentParser(description=__doc__)

  run = parser.add_argument_group("eigenvalue run")
  run.add_argument("-poinc", "--poincare", action="store_true",
                   help="compute eigenvalues of the Poincare map f^h: u -> u on section I - D = 0")
  run.add_argument("-sigma", "--sigma", default="",
                   help="symmetry sigma of the solution, a file or 's sx sy sz ax az'; identity if unset")
  run.add_argument("-sd", "--seed", type=int, default=1,
                   help="seed for the random perturbation")
  run.add_argument("-s", "--smoothness", type=float, default=0.4,
                   help="smoothness of initial perturb, 0 < s < 1")
  run.add_argument("-edu", "--epsdu", type=float, default=1e-7,
                   help="magnitude of perturbation for numerical approximation of the Jacobian")
  run.add_argument("-du", "--perturb", default="",
                   help="initial perturbation velocity field, random if unset")
  run.add_argument("-dtemp", "--perturbt", default="",
                   help="initial perturbation temperature field, random if unset")
  run.add_argument("-dsalt", "--perturbs", default="",
                   help="initial perturbation salinity field, random if unset")
  run.add_argument("-np0", "--nproc0", type=int, default=0,
                   help="number of processes over kx")
  run.add_argument("-np1", "--nproc1", type=int, default=0,
                   help="number of processes over kz")
  run.add_argument("-v", "--verbose", action="store_true", help="debug logging")

  ddc = parser.add_argument_group("DDC flags (override --ddcflags)")
  ddc.add_argument("--ddcflags", default="", help="YAML file of DDC flags")
  ddc.add_argument("-T", "--T", dest="T", type=float, help="integration period")
  ddc.add_argument("-dt", "--dt", dest="dt", type=float, help="time step")
  ddc.add_argument("-dtmin", "--dtmin", dest="dtmin", type=float, help="minimum time step")
  ddc.add_argument("-dtmax", "--dtmax", dest="dtmax", type=float, help="maximum time step")
  ddc.add_argument("-CFLmin", "--CFLmin", dest="CFLmin", type=float, help="minimum CFL number")
  ddc.add_argument("-CFLmax", "--CFLmax", dest="CFLmax", type=float, help="maximum CFL number")
  ddc.add_argument("-vdt", "--variabledt", dest="variabledt", action="store_const", const=True,
                   help="adjust dt to keep CFLmin <= CFL <= CFLmax")
  ddc.add_argument("-cstr", "--constraint", dest="constraint", choices=CONSTRAINTS,
                   help="hold mean pressure gradient or bulk velocity fixed")
  ddc.add_argument("-symms", "--symmetries", dest="symms",
                   help="file of velocity symmetries to restrict the perturbation to")
  ddc.add_argument("-tsymms", "--tempsymmetries", dest="tsymms",
                   help="file of temperature symmetries")
  ddc.add_argument("-ssymms", "--saltsymmetries", dest="ssymms",
                   help="file of salinity symmetries")
  ddc.add_argument("-nu", "--nu", dest="nu", type=float, help="kinematic viscosity")
  ddc.add_argument("-kappat", "--kappat", dest="kappat", type=float, help="thermal diffusivity")
  ddc.add_argument("-kappas", "--kappas", dest="kappas", type=float, help="salt diffusivity")
  ddc.add_argument("-Uadv", "--Uadv", dest="Uadv", type=float,
                   help="streamwise advection velocity of the reference integrator")

  eig = parser.add_argument_group("eigensolver")
  defaults = EigenvalsFlags()
  eig.add_argument("-Neig", "--Neigenvalues", dest="Neig", type=int, default=defaults.Neig,
                   help="number of eigenvalues to compute")
  eig.add_argument("-Narnoldi", "--Narnoldi", dest="Narnoldi", type=int,
                   default=defaults.Narnoldi, help="number of Arnoldi vectors")
  eig.add_argument("-tol", "--tolerance", dest="tol", type=float, default=defaults.tol,
                   help="ARPACK convergence tolerance")
  eig.add_argument("-Nsave", "--Nsave", dest="Nsave", type=int, default=defaults.Nsave,
                   help="number of eigenfunctions to save")
  eig.add_argument("-o", "--outdir", default=defaults.outdir, help="output directory")

  parser.add_argument("uname", help="filename for EQB, TW, or PO velocity solution")
  parser.add_argument("tname", help="filename for EQB, TW, or PO temperature solution")
  parser.add_argument("sname", help="filename for EQB, TW, or PO salinity solution")
  return parser.parse_args(argv)


def _ddcflags(args: argparse.Namespace) -> DDCFlags:
  flags = DDCFlags.load(args.ddcflags) if args.ddcflags else DDCFlags()
  overrides = {field: getattr(args, dest) for dest, field in _ddcflag_args.items()
               if getattr(args, dest) is not None}
  for dest, field in _symmetry_args.items():
    if getattr(args, dest):
      overrides[field] = load_symmetry_list(getattr(args, dest))
  return dataclasses.replace(flags, **overrides)


def _sigma(text: str) -> fieldSymmetry:
  if len(text) == 0:
    return fieldSymmetry()
  if os.path.exists(text):
    return fieldSymmetry.from_file(text)
  return fieldSymmetry.from_string(text)


def _communicator(
    nproc0: int,
    nproc1: int
):
  """ MPI.COMM_WORLD when running on several processes, None for a serial run.
      An explicit grid larger than 1 x 1 requires mpi4py. """
  requested = max(nproc0, 1) * max(nproc1, 1) > 1
  if not requested and importlib.util.find_spec("mpi4py") is None:
    return None
  from mpi4py import MPI
  if requested or MPI.COMM_WORLD.Get_size() > 1:
    return MPI.COMM_WORLD
  return None


def _load_optional(filename: str) -> Optional[FlowField]:
  return FlowField.load(filename) if filename else None


def main(argv: Optional[Sequence[str]]=None) -> int:
  args = _parse_args(argv)
  logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                      format="%(asctime)s %(name)s %(levelname)s: %(message)s")
  try:
    grid = processGrid(args.nproc0, args.nproc1, _communicator(args.nproc0, args.nproc1))
    for handler in logging.getLogger().handlers:
      handler.addFilter(rankFilter(grid.taskid))

    options = findEigenvalsOptions(poincare=args.poincare, sigma=args.sigma, seed=args.seed,
                                   smoothness=args.smoothness, eps_du=args.epsdu,
                                   duname=args.perturb, dtname=args.perturbt,
                                   dsname=args.perturbs, nproc0=args.nproc0,
                                   nproc1=args.nproc1)
    eigenflags = EigenvalsFlags(Neig=args.Neig, Narnoldi=args.Narnoldi, tol=args.tol,
                                Nsave=args.Nsave, outdir=args.outdir)
    ddcflags = _ddcflags(args)
    if grid.taskid == 0:
      options.save("./")
      options.save(eigenflags.outdir)
      eigenflags.save(eigenflags.outdir)
      ddcflags.save(eigenflags.outdir)
    logger.info("DDC flags = %s", ddcflags.to_dict())

    u = FlowField.load(args.uname)
    temp = FlowField.load(args.tname)
    salt = FlowField.load(args.sname)
    du = _load_optional(options.duname)
    dtemp = _load_optional(options.dtname)
    dsalt = _load_optional(options.dsname)

    run = eigenvalsRun(ddcflags, eigenflags, options, grid=grid)
    spectrum = run.run(u, temp, salt, _sigma(options.sigma), du, dtemp, dsalt)
  except (DDCEigenError, ValueError) as err:
    logger.error("error: %s", err)
    return 1

  if spectrum.multipliers.size == 0:
    logger.warning("ARPACK returned no converged eigenvalues")
  else:
    logger.info("leading multiplier |Lambda| = %.17g, exponent = %s",
                abs(spectrum.multipliers[0]), spectrum.exponents[0])
  return 0


if __name__ == "__main__":
  raise SystemExit(main())
