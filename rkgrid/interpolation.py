import numpy as np
from scipy.integrate._ivp.base import DenseOutput


NKNOTS = 4                                     # cubic polynomials


def denspar(FF, y_old, y, dt, d):
    """Coefficients of the dense output polynomial of a step.

    Parameters
    ----------
    FF : ndarray, shape (stage, n)
        Stage derivatives of the step. The last stage is evaluated at the end
        of the step.
    y_old, y : ndarray, shape (n,)
        Solution at the start and at the end of the step.
    dt : float
        Step size.
    d : ndarray, shape (stage,)
        Dense output weights of the method.

    Returns
    -------
    ndarray, shape (5, n)
    """
    ydiff = y - y_old
    bspl = dt * FF[0] - ydiff
    return np.array([
        y_old,
        ydiff,
        bspl,
        ydiff - dt * FF[-1] - bspl,
        dt * (FF.T @ d)])


class DensparOutput(DenseOutput):
    """Quartic dense output of a single step, evaluated in nested form:

        y(s) = r0 + s*(r1 + s1*(r2 + s*(r3 + s1*r4))),   s1 = 1 - s

    with s the scaled time in the step. It reproduces the solution at both
    ends of the step and the first stage derivative at its start.
    """
    def __init__(self, t_old, t, rr):
        super(DensparOutput, self).__init__(t_old, t)
        self.h = t - t_old
        self.rr = rr

    def _call_impl(self, t):
        s = (np.atleast_1d(t) - self.t_old) / self.h
        s1 = 1.0 - s
        r0, r1, r2, r3, r4 = self.rr[:, :, np.newaxis]
        y = r0 + s * (r1 + s1 * (r2 + s * (r3 + s1 * r4)))

        if t.shape:
            return y
        else:
            return y[:, 0]


class NevilleOutput(DenseOutput):
    """Interpolating polynomial through a set of knots, evaluated with the
    Neville-Aitken scheme. Each component is interpolated independently.

    Time is scaled to the span of the knots before the recursion, which keeps
    the scheme well conditioned for large values of t.
    """
    def __init__(self, tknots, yknots):
        super(NevilleOutput, self).__init__(tknots[0], tknots[-1])
        self.tscal = tknots[-1] - tknots[0]
        self.x = (tknots - tknots[0]) / self.tscal
        self.yknots = yknots

    def _call_impl(self, t):
        x = self.x
        n = x.size
        s = (np.atleast_1d(t) - self.t_old) / self.tscal
        p = self.yknots[:, :, np.newaxis] * np.ones(s.size)
        for j in range(1, n):
            for i in range(n - 1, j - 1, -1):
                p[i] = ((s - x[i - j]) * p[i] - (s - x[i]) * p[i - 1]) / (
                    x[i] - x[i - j])
        y = p[n - 1]

        if t.shape:
            return y
        else:
            return y[:, 0]


class KnotBuffer:
    """Sliding window with the last `capacity` solution points (knots).

    New knots are appended at the end. When the buffer is full it has to be
    shifted, which drops the oldest knot, before the next knot can be added.
    """

    def __init__(self, n, capacity=NKNOTS):
        if capacity < 2:
            raise ValueError("A knot buffer needs room for two knots at least.")
        self.capacity = capacity
        self.t = np.empty(capacity)
        self.y = np.empty((capacity, n))
        self.iknots = 0

    def __len__(self):
        return self.iknots

    @property
    def full(self):
        return self.iknots == self.capacity

    def append(self, t, y):
        if self.full:
            raise IndexError("knot buffer is full, shift it first")
        self.t[self.iknots] = t
        self.y[self.iknots] = y
        self.iknots += 1

    def shift(self):
        """Drop the oldest knot."""
        self.t[:-1] = self.t[1:]
        self.y[:-1] = self.y[1:]
        self.iknots = max(self.iknots - 1, 0)

    def interpolant(self):
        """NevilleOutput through all knots in the buffer."""
        if self.iknots < 2:
            raise ValueError("Interpolation needs two knots at least.")
        return NevilleOutput(self.t[:self.iknots].copy(),
                             self.y[:self.iknots].copy())
