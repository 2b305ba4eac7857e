"""Butcher tableaus of embedded explicit Runge-Kutta methods.

Each method is an immutable `RKMethod`. The solution with weights `b1` has the
higher order, the embedded solution with weights `b2` the lower order. The
difference between both is the local error estimate.
"""
import numpy as np


class RKMethod:
    """Immutable description of an embedded explicit Runge-Kutta method.

    Parameters
    ----------
    name : str
        Short identifier of the method.
    A : array_like, shape (stage, stage)
        Runge-Kutta coefficient matrix, strictly lower triangular.
    b1 : array_like, shape (stage,)
        Weights of the higher order solution.
    b2 : array_like, shape (stage,) or None
        Weights of the lower order (embedded) solution. Without these weights
        there is no error estimate and the method cannot adapt its step size.
    c : array_like, shape (stage,)
        Time fraction coefficients (nodes).
    Qerr : float
        Order used in the exponent of the step size controller.
    d : array_like, shape (stage,) or None, optional
        Weights of the dense output polynomial. Methods without these weights
        use polynomial interpolation through the last accepted solutions.
    FSAL : bool, optional
        First Same As Last: the last stage is evaluated at the propagated
        solution (weights b2) at the end of the step, and is reused as the
        first stage of the next step. Default is False.

    Notes
    -----
    Pairs like Dormand-Prince are FSAL for their higher order solution
    (b1). Since the embedded solution is propagated here, their last stage
    is not the first stage of the next step and they are not FSAL.
    """

    def __init__(self, name, A, b1, b2, c, Qerr, d=None, FSAL=False):
        A = _frozen(A)
        stage = A.shape[0] if A.ndim == 2 else 0
        if stage == 0 or A.shape != (stage, stage):
            raise ValueError("`A` must be a non-empty square matrix.")
        if np.any(np.triu(A)):
            raise ValueError("`A` must be strictly lower triangular for an "
                             "explicit method.")
        b1 = _frozen(b1)
        c = _frozen(c)
        b2 = None if b2 is None else _frozen(b2)
        d = None if d is None else _frozen(d)
        for key, value in (("b1", b1), ("b2", b2), ("c", c), ("d", d)):
            if value is not None and value.shape != (stage,):
                raise ValueError(f"`{key}` must have shape ({stage},).")
        if not Qerr > 0:
            raise ValueError("`Qerr` must be positive.")
        if FSAL:
            # the last stage is evaluated at the propagated solution
            weights = b1 if b2 is None else b2
            if c[-1] != 1 or weights[-1] != 0 or not np.allclose(
                    A[-1, :-1], weights[:-1], rtol=1e-15, atol=1e-15):
                raise ValueError(
                    "A FSAL method must evaluate its last stage at the end "
                    "of the step, at the propagated solution (b2).")

        self.__dict__.update(name=name, stage=stage, A=A, b1=b1, b2=b2, c=c,
                             d=d, Qerr=Qerr, FSAL=bool(FSAL))

    def __setattr__(self, key, value):
        raise AttributeError(f"{type(self).__name__} is immutable.")

    def __repr__(self):
        return (f"RKMethod({self.name!r}, stage={self.stage}, "
                f"Qerr={self.Qerr}, FSAL={self.FSAL}, "
                f"dense={self.d is not None})")

    @property
    def varstep(self):
        """True if the method has an embedded error estimate"""
        return self.b2 is not None

    @property
    def densetype(self):
        return "dense" if self.d is not None else "neville"


def _frozen(x):
    x = np.array(x, dtype=float)
    x.flags.writeable = False
    return x


# Heun's method of order 2 with the explicit Euler method embedded. FSAL: the
# second stage is evaluated at the Euler solution.
RK2 = RKMethod(
    "rk2",
    A=[[0, 0],
       [1, 0]],
    b1=[1/2, 1/2],
    b2=[1, 0],
    c=[0, 1],
    Qerr=2,
    FSAL=True)


# Bogacki-Shampine 3(2) pair.
# P. Bogacki, L.F. Shampine, "A 3(2) pair of Runge-Kutta formulas", Applied
# Mathematics Letters, Vol. 2, No. 4. pp. 321-325, 1989.
RK23BS = RKMethod(
    "rk23bs",
    A=[[0, 0, 0, 0],
       [1/2, 0, 0, 0],
       [0, 3/4, 0, 0],
       [2/9, 1/3, 4/9, 0]],
    b1=[2/9, 1/3, 4/9, 0],
    b2=[7/24, 1/4, 1/3, 1/8],
    c=[0, 1/2, 3/4, 1],
    Qerr=3)


# Merson's method of order 4 with an embedded method of order 3 (or 5 for
# linear time invariant problems).
# E. Hairer, G. Wanner, S.P. Norsett, "Solving Ordinary Differential Equations
# I", Springer Berlin, Heidelberg, 1993.
RK34M = RKMethod(
    "rk34m",
    A=[[0, 0, 0, 0, 0],
       [1/3, 0, 0, 0, 0],
       [1/6, 1/6, 0, 0, 0],
       [1/8, 0, 3/8, 0, 0],
       [1/2, 0, -3/2, 2, 0]],
    b1=[1/6, 0, 0, 2/3, 1/6],
    b2=[1/10, 0, 3/10, 2/5, 1/5],
    c=[0, 1/3, 1/3, 1/2, 1],
    Qerr=4)


# Runge-Kutta-Fehlberg 4(5).
# E. Fehlberg, "Low-order classical Runge-Kutta formulas with stepsize control
# and their application to some heat transfer problems", NASA Technical
# Report 315, 1969.
RK45F = RKMethod(
    "rk45f",
    A=[[0, 0, 0, 0, 0, 0],
       [1/4, 0, 0, 0, 0, 0],
       [3/32, 9/32, 0, 0, 0, 0],
       [1932/2197, -7200/2197, 7296/2197, 0, 0, 0],
       [439/216, -8, 3680/513, -845/4104, 0, 0],
       [-8/27, 2, -3544/2565, 1859/4104, -11/40, 0]],
    b1=[16/135, 0, 6656/12825, 28561/56430, -9/50, 2/55],
    b2=[25/216, 0, 1408/2565, 2197/4104, -1/5, 0],
    c=[0, 1/4, 3/8, 12/13, 1, 1/2],
    Qerr=5)


# Cash-Karp 5(4).
# J.R. Cash, A.H. Karp, "A variable order Runge-Kutta method for initial value
# problems with rapidly varying right-hand sides", ACM Transactions on
# Mathematical Software, Vol. 16, No. 3, 1990, pp. 201-222.
RK45CK = RKMethod(
    "rk45ck",
    A=[[0, 0, 0, 0, 0, 0],
       [1/5, 0, 0, 0, 0, 0],
       [3/40, 9/40, 0, 0, 0, 0],
       [3/10, -9/10, 6/5, 0, 0, 0],
       [-11/54, 5/2, -70/27, 35/27, 0, 0],
       [1631/55296, 175/512, 575/13824, 44275/110592, 253/4096, 0]],
    b1=[37/378, 0, 250/621, 125/594, 0, 512/1771],
    b2=[2825/27648, 0, 18575/48384, 13525/55296, 277/14336, 1/4],
    c=[0, 1/5, 3/10, 3/5, 1, 7/8],
    Qerr=5)


# Dormand-Prince 5(4) with the dense output of Hairer's DOPRI5.
# J.R. Dormand, P.J. Prince, "A family of embedded Runge-Kutta formulae",
# Journal of Computational and Applied Mathematics, Vol. 6, No. 1, 1980.
_B_DP = [35/384, 0, 500/1113, 125/192, -2187/6784, 11/84, 0]
RK45DP7 = RKMethod(
    "rk45dp7",
    A=[[0, 0, 0, 0, 0, 0, 0],
       [1/5, 0, 0, 0, 0, 0, 0],
       [3/40, 9/40, 0, 0, 0, 0, 0],
       [44/45, -56/15, 32/9, 0, 0, 0, 0],
       [19372/6561, -25360/2187, 64448/6561, -212/729, 0, 0, 0],
       [9017/3168, -355/33, 46732/5247, 49/176, -5103/18656, 0, 0],
       _B_DP],
    b1=_B_DP,
    b2=[5179/57600, 0, 7571/16695, 393/640, -92097/339200, 187/2100, 1/40],
    c=[0, 1/5, 3/10, 4/5, 8/9, 1, 1],
    d=[-12715105075/11282082432, 0, 87487479700/32700410799,
       -10690763975/1880347072, 701980252875/199316789632,
       -1453857185/822651844, 69997945/29380423],
    Qerr=5)


# Tsitouras 5(4).
# Ch. Tsitouras, "Runge-Kutta pairs of order 5(4) satisfying only the first
# column simplifying assumption", Computers & Mathematics with Applications,
# Vol. 62, No. 2, pp. 770 - 775, 2011.
def _tsitouras():
    C = np.array([0, 0.161, 0.327, 0.9, 0.9800255409045097, 1])
    A = np.array([
        [0, 0, 0, 0, 0, 0],
        [0, 0, 0, 0, 0, 0],
        [0, 0.3354806554923570, 0, 0, 0, 0],
        [0, -6.359448489975075, 4.362295432869581, 0, 0, 0],
        [0, -11.74888356406283, 7.495539342889836, -0.09249506636175525,
            0, 0],
        [0, -12.92096931784711, 8.159367898576159, -0.07158497328140100,
            -0.02826905039406838, 0.0]])
    A[:, 0] = C - A.sum(axis=1)
    B = np.array([
        0.09646076681806523, 0.01, 0.4798896504144996, 1.379008574103742,
        -3.290069515436081, 2.324710524099774])
    # error weights (b2 - b1), the last one of the stage at the end of the
    # step
    E = np.array([
        0.001780011052226, 0.000816434459657, -0.007880878010262,
        0.144711007173263, -0.582357165452555, 0.458082105929187, -1/66])

    # the seventh stage is evaluated at the fifth order solution
    A7 = np.zeros((7, 7))
    A7[:6, :6] = A
    A7[6, :6] = B
    B7 = np.append(B, 0.0)
    return RKMethod("rk45ts", A=A7, b1=B7, b2=B7 + E, c=np.append(C, 1.0),
                    Qerr=5)


RK45TS = _tsitouras()


METHODS = {method.name: method for method in
           (RK2, RK23BS, RK34M, RK45F, RK45CK, RK45DP7, RK45TS)}


def get_method(method):
    """Return the RKMethod for a name, or the method itself."""
    if isinstance(method, RKMethod):
        return method
    try:
        return METHODS[method]
    except (KeyError, TypeError):
        raise ValueError(f"Unknown method {method!r}, choose an RKMethod or "
                         f"one of {sorted(METHODS)}.") from None
