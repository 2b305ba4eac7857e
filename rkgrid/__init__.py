"""This package solves initial value problems of ordinary differential
equations with embedded explicit Runge-Kutta methods on a grid of output
times, with automatic step size control and dense output or polynomial
interpolation.
"""
from rkgrid.methods import (RKMethod, get_method, METHODS, RK2, RK23BS, RK34M,
                            RK45F, RK45CK, RK45DP7, RK45TS)
from rkgrid.evaluators import (DerivativeEvaluator, ModelEvaluator,
                               RHSEvaluator, make_evaluator)
from rkgrid.auto import RungeKuttaAuto, rk

__version__ = '0.1.0'
__license__ = 'MIT'
__credits__ = (
    'scipy', 'L.F Shampine', 'P. Bogacki', 'J.R. Dormand', 'P.J. Prince',
    'E. Hairer', 'H.A. Watts', 'J.R. Cash', 'A.H. Karp', 'E. Fehlberg',
    'R.H. Merson', 'Ch. Tsitouras')
