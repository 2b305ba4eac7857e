"""Tests of the two derivative function call shapes"""
import pytest
from numpy.testing import assert_allclose, assert_, assert_array_equal
import numpy as np
from rkgrid import (ModelEvaluator, RHSEvaluator, DerivativeEvaluator,
                    make_evaluator, rk)


def model(t, y, parms):
    k, = parms
    return [-k * y, k * y.sum(), np.array([t, 2*t])]


def rhs(t, y, k):
    return -k * y


def observer(t, y, k):
    return [k * y.sum(), t, 2*t]


def test_model_evaluator():
    evaluator = ModelEvaluator(model)
    y = np.array([1., 2.])
    dydt, out = evaluator.probe(0.5, y, (2., ))
    assert_array_equal(dydt, [-2., -4.])
    assert_array_equal(out, [6., 0.5, 1.])
    assert_(evaluator.nout == 3)


def test_model_evaluator_derivative_only():
    evaluator = ModelEvaluator(lambda t, y, p: [y[1], -y[0]])
    dydt, out = evaluator.probe(0., np.array([1., 2.]), None)
    assert_array_equal(dydt, [2., -1.])
    assert_(out.size == 0 and evaluator.nout == 0)
    # a single equation
    evaluator = ModelEvaluator(lambda t, y, p: -y)
    dydt, out = evaluator.probe(0., np.array([3.]), None)
    assert_array_equal(dydt, [-3.])
    assert_(evaluator.nout == 0)


def test_rhs_evaluator():
    evaluator = RHSEvaluator(rhs, observer)
    y = np.array([1., 2.])
    dydt, out = evaluator.probe(0.5, y, 2.)
    assert_array_equal(dydt, [-2., -4.])
    assert_array_equal(out, [6., 0.5, 1.])
    assert_(evaluator.nout == 3)
    # tuple of parameters is unpacked
    assert_array_equal(evaluator.derivative(0.5, y, (2., )), [-2., -4.])


def test_rhs_evaluator_without_parameters():
    evaluator = RHSEvaluator(lambda t, y: -y)
    dydt, out = evaluator.probe(0., np.array([1.]), None)
    assert_array_equal(dydt, [-1.])
    assert_(evaluator.nout == 0)


def test_derivative_skips_observer():
    calls = []

    def counting_observer(t, y):
        calls.append(t)
        return y

    evaluator = RHSEvaluator(lambda t, y: -y, counting_observer)
    evaluator.derivative(0., np.ones(1), None)
    assert_(not calls)
    evaluator.evaluate(0., np.ones(1), None)
    assert_(calls == [0.])


def test_wrong_size():
    evaluator = ModelEvaluator(lambda t, y, p: [1., 2., 3.])
    with pytest.raises(ValueError, match="expected 2"):
        evaluator.probe(0., np.ones(2), None)


def test_not_callable():
    with pytest.raises(TypeError):
        ModelEvaluator(None)
    with pytest.raises(TypeError):
        RHSEvaluator(rhs, observer=1.)


def test_base_class():
    with pytest.raises(NotImplementedError):
        DerivativeEvaluator().evaluate(0., np.ones(1), None)


def test_make_evaluator():
    evaluator = RHSEvaluator(rhs)
    assert_(make_evaluator(evaluator) is evaluator)
    assert_(isinstance(make_evaluator(model), ModelEvaluator))


@pytest.mark.parametrize("method", ["rk45dp7", "rk23bs"])
def test_same_solution(method):
    times = np.linspace(0, 2, 5)
    y0 = [1., 0.5]
    sol_model = rk(y0, times, model, parms=(0.7, ), method=method)
    sol_rhs = rk(y0, times, RHSEvaluator(rhs, observer), parms=0.7,
                 method=method)
    assert_array_equal(sol_model.yout, sol_rhs.yout)
    # second order solution propagated by rk23bs
    assert_allclose(sol_model.y, np.exp(-0.7*times) * np.c_[y0], rtol=1e-3)
