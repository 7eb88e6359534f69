""" Process grid over the spectral (mx, mz) plane.

    Communicators follow the mpi4py API (Get_rank, Get_size, bcast);
    serialComm is the single process case. """
import logging
import math


class serialComm:
  def Get_rank(self) -> int:
    return 0

  def Get_size(self) -> int:
    return 1

  def bcast(self, obj, root: int=0):
    return obj


class processGrid:
  def __init__(
      self,
      nproc0: int=0,
      nproc1: int=0,
      comm=None
  ):
    """ nproc0 x nproc1 tasks; 0, 0 lets nproc0 take every task """
    self.comm = serialComm() if comm is None else comm
    self.taskid = self.comm.Get_rank()
    self.nproc = self.comm.Get_size()

    if nproc0 <= 0 and nproc1 <= 0:
      nproc0, nproc1 = self.nproc, 1
    elif nproc0 <= 0:
      nproc0 = self.nproc // nproc1
    elif nproc1 <= 0:
      nproc1 = self.nproc // nproc0
    if nproc0 * nproc1 != self.nproc:
      raise ValueError("process grid " + str(nproc0) + " x " + str(nproc1) +
                       " does not match " + str(self.nproc) + " processes")
    self.nproc0 = nproc0
    self.nproc1 = nproc1

  def task_coeff(
      self,
      mx: int,
      mz: int,
      Mx: int,
      Mz: int
  ) -> int:
    """ Rank owning spectral mode (mx, mz); mx is blocked over nproc0, mz over nproc1 """
    block_x = math.ceil(Mx / self.nproc0)
    block_z = math.ceil(Mz / self.nproc1)
    return (mx // block_x) * self.nproc1 + mz // block_z

  def owns(
      self,
      mx: int,
      mz: int,
      Mx: int,
      Mz: int
  ) -> bool:
    return self.taskid == self.task_coeff(mx, mz, Mx, Mz)


class rankFilter(logging.Filter):
  """ Keep log records from a single rank only """
  def __init__(
      self,
      taskid: int,
      root: int=0
  ):
    super().__init__()
    self.taskid = taskid
    self.root = root

  def filter(self, record: logging.LogRecord) -> bool:
    return self.taskid == self.root
