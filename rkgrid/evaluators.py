"""Derivative evaluators.

The stepper calls a single method, `evaluate(t, y, parms)`, that returns the
derivative and the auxiliary outputs. Two call shapes of user functions are
wrapped behind it:

- `ModelEvaluator` for model functions ``func(t, y, parms)`` that return the
  derivative, optionally followed by auxiliary outputs in one sequence.
- `RHSEvaluator` for right-hand sides ``fun(t, y, *args)`` that return only
  the derivative, with an optional separate ``observer(t, y, *args)``.
"""
import numpy as np


class DerivativeEvaluator:
    """Base class of the derivative evaluators."""

    # number of auxiliary outputs, known after `probe`
    nout: int = 0

    def evaluate(self, t, y, parms):
        """Return the derivative and auxiliary outputs at (t, y).

        Returns
        -------
        dydt : ndarray, shape (n,)
        out : ndarray, shape (nout,)
        """
        raise NotImplementedError

    def derivative(self, t, y, parms):
        """Return only the derivative at (t, y)."""
        return self.evaluate(t, y, parms)[0]

    def probe(self, t, y, parms):
        """Evaluate once, check the size of the derivative and determine the
        number of auxiliary outputs.
        """
        dydt, out = self.evaluate(t, y, parms)
        if dydt.shape != y.shape:
            raise ValueError(
                f"The derivative function returned {dydt.size} values, "
                f"expected {y.size}.")
        self.nout = out.size
        return dydt, out


def _concatenate(values):
    if not values:
        return np.empty(0)
    return np.concatenate([np.asarray(v, dtype=float).ravel() for v in values])


class ModelEvaluator(DerivativeEvaluator):
    """Wrap a model function ``func(t, y, parms)``.

    The function returns either the derivative as array_like with the shape of
    y, or a sequence whose first item is the derivative and whose other items
    (scalars or arrays) are auxiliary outputs.
    """

    def __init__(self, func):
        if not callable(func):
            raise TypeError("`func` must be callable.")
        self.func = func

    def evaluate(self, t, y, parms):
        val = self.func(t, y, parms)
        if isinstance(val, (list, tuple)):
            first = np.asarray(val[0], dtype=float)
            if first.ndim == 1:
                return first, _concatenate(val[1:])
        return np.asarray(val, dtype=float).reshape(-1), np.empty(0)


class RHSEvaluator(DerivativeEvaluator):
    """Wrap a right-hand side ``fun(t, y, *args)`` and an optional observer
    ``observer(t, y, *args)`` of auxiliary outputs. The parameters are passed
    as `args`: a tuple is unpacked, None means no arguments, anything else is
    passed as a single argument.
    """

    def __init__(self, fun, observer=None):
        if not callable(fun):
            raise TypeError("`fun` must be callable.")
        if observer is not None and not callable(observer):
            raise TypeError("`observer` must be callable.")
        self.fun = fun
        self.observer = observer

    @staticmethod
    def _args(parms):
        if parms is None:
            return ()
        if isinstance(parms, tuple):
            return parms
        return (parms, )

    def evaluate(self, t, y, parms):
        args = self._args(parms)
        dydt = np.asarray(self.fun(t, y, *args), dtype=float).reshape(-1)
        if self.observer is None:
            return dydt, np.empty(0)
        out = np.atleast_1d(np.asarray(self.observer(t, y, *args),
                                       dtype=float)).ravel()
        return dydt, out

    def derivative(self, t, y, parms):
        # skip the observer
        return np.asarray(self.fun(t, y, *self._args(parms)),
                          dtype=float).reshape(-1)


def make_evaluator(func):
    """Return `func` if it is a DerivativeEvaluator, or wrap it in a
    ModelEvaluator.
    """
    if isinstance(func, DerivativeEvaluator):
        return func
    return ModelEvaluator(func)
