import logging
from warnings import warn
import numpy as np
from scipy.integrate._ivp.common import (
    validate_max_step, validate_first_step, warn_extraneous)
from scipy.integrate._ivp.ivp import OdeResult
from rkgrid.common import (
    validate_times, validate_y0, validate_tol, error_norm, control_step,
    h_start, MAX_STEPS_EXCEEDED, STEP_BELOW_HMIN, NONFINITE_ERROR,
    OUTPUT_OVERRUN)
from rkgrid.diagnostics import RunState, OutputMatrix
from rkgrid.evaluators import make_evaluator
from rkgrid.interpolation import KnotBuffer, DensparOutput, denspar
from rkgrid.methods import get_method


class RungeKuttaAuto:
    """Explicit Runge-Kutta integration with automatic step size control
    on a grid of output times.

    The step sizes are chosen by the error estimate of an embedded pair and
    are independent of the output grid. The solution at the output times is
    reconstructed from the accepted steps: with the dense output polynomial of
    the method if it has one, and by Neville-Aitken interpolation through the
    last four accepted solutions otherwise.

    Some properties of this implementation:
      - the solution of the embedded (lower order) method is propagated;
      - the error estimate is a scaled Euclidean norm, not an RMS norm;
      - a step that would need a size below `hmin` is accepted with `hmin`,
        which is reported in the status;
      - the last step ends exactly at the end of the integration interval.

    See `rk` for a description of the parameters.
    """

    def __init__(self, func, y0, times, parms=None, method="rk45dp7",
                 rtol=1e-6, atol=1e-6, tcrit=None, hmin=0.0, hmax=None,
                 hini=None, maxsteps=5000, verbose=False, initfunc=None,
                 **extraneous):
        warn_extraneous(extraneous)
        self.method = get_method(method)
        if not self.method.varstep:
            raise ValueError(
                f"Method {self.method.name!r} has no embedded error estimate "
                "(b2) and cannot be used with automatic step size control.")
        self.y0 = validate_y0(y0)
        self.times = validate_times(times)
        self.rtol, self.atol = validate_tol(rtol, atol, self.y0)
        self.t0 = self.times[0]
        self.tmax = self.times[-1]
        if tcrit is not None:
            self.tmax = max(self.tmax, float(tcrit))
        self.hmin, self.hmax = self._validate_step_bounds(hmin, hmax)
        if not (isinstance(maxsteps, (int, np.integer)) and maxsteps > 0):
            raise ValueError("`maxsteps` must be a positive integer.")
        self.maxsteps = maxsteps
        self.verbose = bool(verbose)

        # parameters are fixed from here on
        self.parms = parms if initfunc is None else initfunc(parms)
        self.evaluator = make_evaluator(func)
        self.f0, _ = self.evaluator.probe(self.t0, self.y0, self.parms)
        self.hini = self._first_step(hini)

    def _validate_step_bounds(self, hmin, hmax):
        span = self.tmax - self.t0
        hmin = float(hmin)
        if hmin < 0:
            raise ValueError("`hmin` must be non-negative.")
        hmax = span if hmax is None else min(validate_max_step(hmax), span)
        if hmin > hmax:
            raise ValueError("`hmin` must not exceed `hmax`.")
        return hmin, hmax

    def _first_step(self, hini):
        if hini is None:
            def fun(t, y):
                return self.evaluator.derivative(t, y, self.parms)
            dt = abs(h_start(fun, self.t0, self.t0 + self.hmax, self.y0,
                             self.f0, self.method.Qerr - 1, self.rtol,
                             self.atol))
        else:
            dt = validate_first_step(hini, self.t0, self.tmax)
        return max(self.hmin, min(self.hmax, dt))

    def integrate(self):
        """Integrate over the output times and return an OdeResult."""
        method = self.method
        A, b1, b2, c = method.A, method.b1, method.b2, method.c
        neq = self.y0.size
        self.state = state = RunState(method, self.t0)
        self.output = output = OutputMatrix(self.times, neq,
                                            self.evaluator.nout)

        t = self.t0
        y0 = self.y0.copy()
        dt = self.hini
        FF = np.zeros((method.stage, neq))
        knots = None
        if method.densetype == "neville":
            knots = KnotBuffer(neq)
            knots.append(t, y0)
        output.store(t, y0)

        accept = False
        while t < self.tmax:

            # reuse the last stage of the previous step
            j1 = 0
            if method.FSAL and accept:
                FF[0] = FF[-1]
                j1 = 1
            for j in range(j1, method.stage):
                dy = dt * (FF[:j].T @ A[j, :j])
                FF[j] = self.evaluator.derivative(t + c[j] * dt, y0 + dy,
                                                  self.parms)

            # both embedded solutions
            y1 = y0 + dt * (FF.T @ b1)
            y2 = y0 + dt * (FF.T @ b2)

            err = error_norm(y1, y2, self.atol, self.rtol)
            if not np.isfinite(err):
                state.record(False, dt, dt, t)
                state.flag(NONFINITE_ERROR)
                break

            accept, dt_new, floored = control_step(
                err, dt, self.hmin, self.hmax, method.Qerr)
            if floored:
                state.flag(STEP_BELOW_HMIN)
                if self.verbose:
                    warn(f"Step size below hmin at t={t}, continuing with "
                         "hmin.")

            if accept:
                # land exactly on tmax with the last step
                t_new = self.tmax if dt == self.tmax - t else t + dt
                self._reconcile(t, t_new, dt, y0, y2, FF, knots)
                t = t_new
                y0 = y2
            state.record(accept, dt, dt_new, t)
            dt = min(dt_new, self.tmax - t)

            if output.overrun:
                logging.error('Output buffer overflow at t=%g.', t)
                state.flag(OUTPUT_OVERRUN)
                break
            if state.nsteps > self.maxsteps:
                state.flag(MAX_STEPS_EXCEEDED)
                if self.verbose:
                    warn(f"Maximum number of steps ({self.maxsteps}) "
                         f"exceeded at t={t}.")
                break

        # rows passed before the knot buffer was ever full
        if knots is not None and len(knots) >= 2:
            output.store_from(knots.interpolant(), knots.t[len(knots) - 1])

        output.fill_outputs(self.evaluator, self.parms)

        if self.verbose:
            logging.info(
                'Number of steps %d (accepted %d, rejected %d), output rows '
                '%d of %d, status %d', state.nsteps, state.naccept,
                state.nreject, output.cursor, output.nt, state.status)
        return self._result()

    def _reconcile(self, t, t_new, dt, y_old, y, FF, knots):
        """Write all output rows inside the accepted step [t, t_new]."""
        if knots is None:
            rr = denspar(FF, y_old, y, dt, self.method.d)
            self.output.store_from(DensparOutput(t, t_new, rr), t_new)
        else:
            knots.append(t_new, y)
            if knots.full:
                self.output.store_from(knots.interpolant(), t_new)
                knots.shift()

    def _result(self):
        state = self.state
        yout = self.output.yout
        neq = self.y0.size
        return OdeResult(
            yout=yout, t=yout[:, 0], y=yout[:, 1:1 + neq].T,
            out=yout[:, 1 + neq:].T, status=state.status,
            message=state.message, success=state.success,
            nsteps=state.nsteps, naccept=state.naccept,
            nreject=state.nreject, nfev=state.nfev, order=state.order,
            istate=state.istate, rstate=state.rstate,
            method=self.method.name)


def rk(y0, times, func, parms=None, method="rk45dp7", rtol=1e-6, atol=1e-6,
       tcrit=None, hmin=0.0, hmax=None, hini=None, maxsteps=5000,
       verbose=False, initfunc=None, **extraneous):
    """Solve an initial value problem with an embedded explicit Runge-Kutta
    method and automatic step size control.

    The system is dy/dt = f(t, y, parms), y(times[0]) = y0. The solution is
    returned at the output times, which do not restrict the steps taken
    internally.

    Parameters
    ----------
    y0 : array_like, shape (n,)
        Initial state.
    times : array_like, shape (nt,)
        Output times, strictly increasing. The integration starts at
        ``times[0]``.
    func : callable or DerivativeEvaluator
        Model function with signature ``func(t, y, parms)``. It returns the
        derivative as array_like with shape (n,), or a sequence with the
        derivative as first item and auxiliary outputs (scalars or arrays) as
        the other items. For right-hand sides ``fun(t, y, *args)`` pass
        ``RHSEvaluator(fun, observer)``.
    parms : any, optional
        Parameters, passed unchanged to every call of `func`.
    method : str or RKMethod, optional
        The Runge-Kutta method: one of "rk2", "rk23bs", "rk34m", "rk45f",
        "rk45ck", "rk45dp7" and "rk45ts", or an RKMethod with embedded
        weights b2. Default is "rk45dp7".
    rtol, atol : float or array_like, optional
        Relative and absolute tolerances, scalar or with shape (n,). The error
        of each component is scaled by ``atol + rtol * abs(y)``. Default
        values are 1e-6 for both.
    tcrit : float, optional
        Time up to which the integration is continued. The end of the
        integration is ``max(times[-1], tcrit)``.
    hmin : float, optional
        Minimum step size. Steps that would need a smaller size are taken
        with `hmin` anyway; the status then reports -2. Default is 0.
    hmax : float, optional
        Maximum step size. Default is the length of the integration interval.
    hini : float, optional
        Initial step size. Default is None, which means that it is estimated.
    maxsteps : int, optional
        Maximum number of step attempts. Default is 5000.
    verbose : bool, optional
        Warn about a reduced accuracy and early termination, and log a
        summary. Default is False.
    initfunc : callable, optional
        Called once as ``initfunc(parms)`` before the integration. Its return
        value replaces `parms`.

    Returns
    -------
    OdeResult with the fields:
    yout : ndarray, shape (nt, 1 + n + nout)
        Output matrix. Columns: time, states, auxiliary outputs. Rows that
        are not reached due to early termination contain NaN.
    t : ndarray, shape (nt,)
        First column of `yout`.
    y : ndarray, shape (n, nt)
        States at the output times.
    out : ndarray, shape (nout, nt)
        Auxiliary outputs at the output times.
    status : int
        2 for success, -1 if maxsteps was exceeded, -2 if the step size was
        forced to hmin, -3 if the error estimate was not finite.
    message : str
        Description of the status.
    success : bool
        True if the status is 2.
    nsteps, naccept, nreject : int
        Number of step attempts, accepted steps and rejected steps.
    nfev : int
        Number of derivative evaluations in the steps.
    order : float
        Order of the method used in the step size control.
    istate, rstate : ndarray
        Diagnostics in the slots used by the multistep solvers, see
        `RunState`.
    method : str
        Name of the method.
    """
    return RungeKuttaAuto(
        func, y0, times, parms=parms, method=method, rtol=rtol, atol=atol,
        tcrit=tcrit, hmin=hmin, hmax=hmax, hini=hini, maxsteps=maxsteps,
        verbose=verbose, initfunc=initfunc, **extraneous).integrate()
