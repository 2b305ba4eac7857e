import numpy as np
from rkgrid.common import SUCCESS, MESSAGES


class RunState:
    """Counters and status of a single integration.

    The `istate` and `rstate` vectors use the slots of the multistep solvers:
        istate[0]   status
        istate[12]  number of steps (accepted and rejected)
        istate[13]  number of derivative evaluations
        istate[15]  order of the method
        rstate[0]   last accepted step size
        rstate[1]   proposed size of the next step
        rstate[2]   time reached
    """

    def __init__(self, method, t0):
        self.status = SUCCESS
        self.nsteps = 0
        self.naccept = 0
        self.nreject = 0
        self.order = method.Qerr
        self.stage = method.stage
        self.FSAL = int(method.FSAL)
        self.hu = 0.0
        self.hcur = 0.0
        self.tcur = t0

    def record(self, accept, dt, dt_new, t):
        """Count a step attempt and remember its sizes."""
        self.nsteps += 1
        if accept:
            self.naccept += 1
            self.hu = dt
            self.tcur = t
        else:
            self.nreject += 1
        self.hcur = dt_new

    def flag(self, status):
        self.status = status

    @property
    def success(self):
        return self.status == SUCCESS

    @property
    def message(self):
        return MESSAGES[self.status]

    @property
    def nfev(self):
        # the first stage of FSAL methods is free
        return self.nsteps * (self.stage - self.FSAL)

    @property
    def istate(self):
        istate = np.zeros(22, dtype=int)
        istate[0] = self.status
        istate[12] = self.nsteps
        istate[13] = self.nfev
        istate[15] = round(self.order)
        return istate

    @property
    def rstate(self):
        return np.array([self.hu, self.hcur, self.tcur])


class OutputMatrix:
    """Matrix with a row per output time and the columns time, states and
    auxiliary outputs. Rows that are not reached hold NaN.

    Rows are filled in order; `cursor` is the index of the first row that
    is still pending.
    """

    def __init__(self, times, neq, nout=0):
        self.times = times
        self.neq = neq
        self.nout = nout
        self.yout = np.full((times.size, 1 + neq + nout), np.nan)
        self.cursor = 0

    @property
    def nt(self):
        return self.times.size

    @property
    def overrun(self):
        return self.cursor > self.nt

    def store(self, t, y):
        """Write a single row at the cursor"""
        self.yout[self.cursor, 0] = t
        self.yout[self.cursor, 1:1 + self.neq] = y
        self.cursor += 1

    def store_from(self, interpolant, t_end):
        """Write all pending rows with times up to t_end by evaluating the
        interpolant. Returns the number of rows written.
        """
        stop = np.searchsorted(self.times, t_end, side="right")
        if stop <= self.cursor:
            return 0
        t_ext = self.times[self.cursor:stop]
        self.yout[self.cursor:stop, 0] = t_ext
        self.yout[self.cursor:stop, 1:1 + self.neq] = interpolant(t_ext).T
        n = stop - self.cursor
        self.cursor = stop
        return n

    def reached(self):
        """Indices of the rows that hold a solution."""
        return np.flatnonzero(~np.isnan(self.yout[:, 0]))

    def fill_outputs(self, evaluator, parms):
        """Recompute the auxiliary outputs exactly at each reached row."""
        if not self.nout:
            return
        for row in self.reached():
            t = self.yout[row, 0]
            y = self.yout[row, 1:1 + self.neq].copy()
            _, out = evaluator.evaluate(t, y, parms)
            self.yout[row, 1 + self.neq:] = out
