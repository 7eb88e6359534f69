""" Error kinds raised while setting up and running an eigenvalue computation """


class DDCEigenError(Exception):
  """ Base class; every subclass aborts the run. """


class DimensionMismatch(DDCEigenError):
  """ Vector length or field discretisations are inconsistent. """


class NotAFixedPoint(DDCEigenError):
  """ (x, sigma, T) does not satisfy sigma f^T(x) - x = 0. """


class MissingInput(DDCEigenError):
  """ A required input file is absent. """


class NumericDivergence(DDCEigenError):
  """ Reported by the time integrator, e.g. a non-finite state. """
