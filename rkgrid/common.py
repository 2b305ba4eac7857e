import numpy as np
from math import sqrt, copysign


SAFETY = 0.9                  # safety factor of the step size controller
MIN_FACTOR = 0.2              # largest reduction of a rejected step
TINY_ERROR = 1e-20            # below this an error estimate counts as exact

# status codes, compatible with istate[0] of the multistep solvers
SUCCESS = 2
MAX_STEPS_EXCEEDED = -1
STEP_BELOW_HMIN = -2
NONFINITE_ERROR = -3
OUTPUT_OVERRUN = -4

MESSAGES = {
    SUCCESS: "Integration successful.",
    MAX_STEPS_EXCEEDED: "Maximum number of steps exceeded.",
    STEP_BELOW_HMIN: "Step size was forced to hmin; the requested accuracy "
                     "may not be met.",
    NONFINITE_ERROR: "Overflow or underflow encountered.",
    OUTPUT_OVERRUN: "Output buffer overflow (internal error)."}


def validate_times(times):
    """Validate the output times: a 1D, finite, strictly increasing sequence
    of at least two values.
    """
    times = np.asarray(times, dtype=float)
    if times.ndim != 1:
        raise ValueError("`times` must be one-dimensional.")
    if times.size < 2:
        raise ValueError("`times` must contain at least two values.")
    if not np.all(np.isfinite(times)):
        raise ValueError("All values of `times` must be finite.")
    if np.any(np.diff(times) <= 0):
        raise ValueError("`times` must be strictly increasing.")
    return times


def validate_y0(y0):
    y0 = np.asarray(y0)
    if np.issubdtype(y0.dtype, np.complexfloating):
        raise TypeError("`y0` must be real valued.")
    y0 = y0.astype(float)
    if y0.ndim != 1:
        raise ValueError("`y0` must be one-dimensional.")
    if y0.size == 0:
        raise ValueError("`y0` must contain at least one value.")
    if not np.all(np.isfinite(y0)):
        raise ValueError("All values of `y0` must be finite.")
    return y0


def validate_tol(rtol, atol, y):
    """Validate tolerance values. Both rtol and atol can be scalar or
    array-like with the size of y. They are broadcast to that size.

    atol cannot be exactly zero. It is bounded from below by sqrt(tiny)
    without warning. This keeps the error scale positive.
    """
    tols = []
    for name, tol in (("rtol", rtol), ("atol", atol)):
        tol = np.asarray(tol, dtype=float)
        if tol.ndim > 1 or (tol.ndim == 1 and tol.size not in (1, y.size)):
            raise ValueError(f"`{name}` has wrong shape.")
        if np.any(tol < 0):
            raise ValueError(f"`{name}` must be positive.")
        tols.append(np.broadcast_to(tol, y.shape).copy())
    rtol, atol = tols
    # For double precision float: sqrt(tiny) ~ 1.5e-154
    atol = np.maximum(atol, sqrt(np.finfo(y.dtype).tiny))
    return rtol, atol


def calculate_scale(atol, rtol, y1, y2):
    """calculate a scaling vector for the error estimate"""
    return atol + rtol * np.maximum(np.abs(y1), np.abs(y2))


def error_norm(y1, y2, atol, rtol):
    """Scaled Euclidean norm of the difference between the two embedded
    solutions. This is the norm that decides on step acceptance.

    Unlike the RMS norm, the sum is not divided by the number of equations.
    """
    d = (y2 - y1) / calculate_scale(atol, rtol, y1, y2)
    return sqrt(d @ d)


def rms_norm(x):
    """Compute RMS norm."""
    return sqrt(x @ x / x.size)


def control_step(err, dt, hmin, hmax, qerr):
    """Decide on acceptance of a step with size `dt` and scaled error norm
    `err`, and propose the size of the next step.

    Returns
    -------
    accept : bool
        Whether the step is accepted.
    dt_new : float
        The proposed size of the next (or repeated) step.
    floored : bool
        True if the proposal fell below hmin. The step is then accepted anyway
        and the proposal is set to hmin.
    """
    accept = True
    dt_new = dt
    if err < TINY_ERROR:
        dt_new = hmax
    elif err < 1.0:
        dt_new = min(hmax, dt * SAFETY * err ** (-1.0 / qerr))
    elif err > 1.0:
        accept = False
        dt_new = dt * max(SAFETY * err ** (-1.0 / qerr), MIN_FACTOR)
    # err == 1.0: accept and keep the step size

    floored = dt_new < hmin
    if floored:
        accept = True
        dt_new = hmin
    return accept, dt_new, floored


def h_start(df, a, b, y, yprime, morder, rtol, atol):
    """h_start computes a starting step size to be used in solving initial
    value problems in ordinary differential equations.

    This method is developed by H.A. Watts and described in [1]_. This function
    is a Python translation of the Fortran source code [2]_, using the RMS
    norm and vector valued tolerances.

    Parameters
    ----------
    df : callable
        Right-hand side of the system. The calling signature is df(t, y) and
        it returns the derivative as an array with the shape of y.
    a : float
        This is the initial point of integration.
    b : float
        A value of the independent variable that limits the size of the first
        step. The step will not be larger than abs(b-a), unless `b` is too
        close to `a`.
    y : array_like, shape (n,)
        The initial values at `a`.
    yprime : array_like, shape (n,)
        The derivatives at `a`.
    morder : int
        The order of the formula which will be used for taking the first
        integration step.
    rtol, atol : array_like, shape (n,)
        Relative and absolute tolerances.

    Returns
    -------
    float
        An appropriate starting step size.

    References
    ----------
    .. [1] H.A. Watts, "Starting step size for an ODE solver", Journal of
           Computational and Applied Mathematics, Vol. 9, No. 2, 1983,
           pp. 177-191, ISSN 0377-0427.
           https://doi.org/10.1016/0377-0427(83)90040-7
    .. [2] Slatec Fortran code dstrt.f.
           https://www.netlib.org/slatec/src/
    """
    neq = y.size
    spy = np.empty_like(y)
    pv = np.empty_like(y)
    etol = atol + rtol * np.abs(y)

    # `big` prevents overflow, small**(3/8) is the relative perturbation used
    # for difference approximations of derivatives.
    big = sqrt(np.finfo(y.dtype).max)
    small = np.nextafter(np.finfo(y.dtype).epsneg, 1.0)

    dx = b - a
    absdx = abs(dx)
    relper = small**0.375

    # bound (dfdxb) on the partial derivative with respect to the independent
    # variable and a bound (fbnd) on the first derivative
    da = copysign(max(min(relper * abs(a), absdx), 100.0 * small * abs(a)), dx)
    da = da or relper * dx
    sf = df(a + da, y)                                               # evaluate
    yp = sf - yprime
    delf = rms_norm(yp)
    dfdxb = big
    if delf < big * abs(da):
        dfdxb = delf / abs(da)
    fbnd = rms_norm(sf)

    # estimate (dfdub) of the local lipschitz constant by numerical
    # differences. Three iterations (two when neq=1) with different
    # perturbation vectors of constant size.
    dely = relper * rms_norm(y)
    dely = dely or relper
    dely = copysign(dely, dx)
    delf = rms_norm(yprime)
    fbnd = max(fbnd, delf)

    if delf:
        # use initial derivatives for first perturbation
        spy[:] = yprime
        yp[:] = yprime
    else:
        # cannot have a null perturbation vector
        spy[:] = 0.0
        yp[:] = 1.0
        delf = rms_norm(yp)

    dfdub = 0.0
    lk = min(neq + 1, 3)
    for k in range(1, lk + 1):

        pv[:] = y + dely / delf * yp

        if k == 2:
            # shifted value of the independent variable
            yp[:] = df(a + da, pv)                                   # evaluate
            pv[:] = yp - sf
        else:
            yp[:] = df(a, pv)                                        # evaluate
            pv[:] = yp - yprime

        fbnd = max(fbnd, rms_norm(yp))
        delf = rms_norm(pv)
        if delf >= big * abs(dely):
            # protect against an overflow
            dfdub = big
            break
        dfdub = max(dfdub, delf / abs(dely))

        if k == lk:
            break

        # choose next perturbation vector, no zero components and signs
        # consistent with the slopes of the local solution if possible
        delf = delf or 1.0
        if k == 2:
            dy = np.where(y, y, dely / relper)
        else:
            dy = np.where(pv, pv, delf)
        spy[:] = np.where(spy, spy, yp)
        yp[:] = np.where(spy, np.copysign(dy, spy), dy)
        delf = rms_norm(yp)

    # bound (ydpb) on the norm of the second derivative
    ydpb = dfdxb + dfdub * fbnd

    # tolerance parameter in the middle of the error tolerance range
    tolexp = np.log10(etol)
    tolp = 10.0 ** (0.5 * (tolexp.sum() / neq + min(tolexp.min(), big)) /
                    (morder + 1))

    h = absdx
    if ydpb == 0.0 and fbnd == 0.0:
        if tolp < 1.0:
            h = absdx * tolp
    elif ydpb == 0.0:
        if tolp < fbnd * absdx:
            h = tolp / fbnd
    else:
        srydpb = sqrt(0.5 * ydpb)
        if tolp < srydpb * absdx:
            h = tolp / srydpb

    if dfdub:
        h = min(h, 1.0 / dfdub)

    # not smaller than 100*small*abs(a), or small*abs(b) if that underflows
    h = max(h, 100.0 * small * abs(a))
    h = h or small * abs(b)
    return copysign(h, dx)
