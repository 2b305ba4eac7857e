"""Tests of the dense output, Neville-Aitken interpolation and knot buffer"""
import pytest
from numpy.testing import assert_allclose, assert_, assert_array_equal
import numpy as np
from rkgrid import RK45DP7
from rkgrid.interpolation import (
    denspar, DensparOutput, NevilleOutput, KnotBuffer, NKNOTS)


def dp_step(fun, t, y, h):
    """single Dormand-Prince step, returns stages and both solutions"""
    method = RK45DP7
    FF = np.zeros((method.stage, y.size))
    for j in range(method.stage):
        FF[j] = fun(t + method.c[j]*h, y + h * (FF[:j].T @ method.A[j, :j]))
    return FF, y + h * (FF.T @ method.b1), y + h * (FF.T @ method.b2)


def fun(t, y):
    return np.array([y[1], -y[0]])


def test_denspar_end_points():
    t, h = 0.3, 0.2
    y = np.array([np.sin(t), np.cos(t)])
    FF, y1, y2 = dp_step(fun, t, y, h)
    sol = DensparOutput(t, t + h, denspar(FF, y, y2, h, RK45DP7.d))
    assert_allclose(sol(t), y, rtol=1e-15)
    assert_allclose(sol(t + h), y2, rtol=1e-14)
    assert_(sol.t_min == t and sol.t_max == t + h)


def test_dense_output_accuracy():
    t, h = 0.0, 0.1
    y = np.array([0., 1.])
    FF, y1, y2 = dp_step(fun, t, y, h)
    sol = DensparOutput(t, t + h, denspar(FF, y, y2, h, RK45DP7.d))
    ts = np.linspace(t, t + h, 7)
    ys = sol(ts)
    assert_(ys.shape == (2, 7))
    assert_allclose(ys, [np.sin(ts), np.cos(ts)], atol=1e-6)


def test_dense_output_derivative_at_start():
    # the polynomial reproduces the first stage derivative
    t, h, eps = 0.0, 0.1, 1e-7
    y = np.array([0., 1.])
    FF, y1, y2 = dp_step(fun, t, y, h)
    sol = DensparOutput(t, t + h, denspar(FF, y, y2, h, RK45DP7.d))
    slope = (sol(t + eps) - sol(t)) / eps
    assert_allclose(slope, FF[0], atol=1e-5)


def test_neville_reproduces_cubic():
    def cubic(t):
        return np.array([t**3 - 2*t, 1 + t])
    tknots = np.array([0., 0.3, 1.0, 1.7])
    yknots = cubic(tknots).T
    sol = NevilleOutput(tknots, yknots)
    ts = np.array([0.1, 0.5, 1.2, 1.7])
    assert_allclose(sol(ts), cubic(ts), rtol=1e-12, atol=1e-14)
    assert_allclose(sol(0.5), cubic(0.5), rtol=1e-12)
    assert_(sol(0.5).shape == (2, ))


def test_neville_at_knots():
    tknots = np.array([2., 2.5, 3.25, 4.])
    yknots = np.array([[1., 5.], [-3., 2.], [0.5, 0.25], [7., -1.]])
    sol = NevilleOutput(tknots, yknots)
    assert_allclose(sol(tknots).T, yknots, rtol=1e-13, atol=1e-14)


def test_neville_large_time():
    t0 = 1e6
    tknots = t0 + np.array([0., 1., 2., 3.])
    yknots = ((tknots - t0)**2)[:, np.newaxis]
    sol = NevilleOutput(tknots, yknots)
    assert_allclose(sol(t0 + 1.5), [2.25], rtol=1e-9)


def test_knot_buffer():
    buffer = KnotBuffer(2)
    assert_(buffer.capacity == NKNOTS == 4)
    assert_(len(buffer) == 0 and not buffer.full)
    for i in range(4):
        buffer.append(float(i), [i, -i])
    assert_(buffer.full)
    with pytest.raises(IndexError):
        buffer.append(4., [4, -4])

    sol = buffer.interpolant()
    assert_(sol.t_min == 0. and sol.t_max == 3.)
    assert_allclose(sol(1.5), [1.5, -1.5])

    # oldest knot is dropped
    buffer.shift()
    assert_(len(buffer) == 3 and not buffer.full)
    buffer.append(4., [4, -4])
    assert_array_equal(buffer.t, [1., 2., 3., 4.])
    assert_array_equal(buffer.y[:, 0], [1., 2., 3., 4.])


def test_knot_buffer_interpolant_is_a_copy():
    buffer = KnotBuffer(1)
    buffer.append(0., [0.])
    buffer.append(1., [1.])
    sol = buffer.interpolant()
    buffer.shift()
    buffer.append(2., [10.])
    assert_allclose(sol(0.5), [0.5])


def test_knot_buffer_few_knots():
    buffer = KnotBuffer(1)
    buffer.append(0., [1.])
    with pytest.raises(ValueError):
        buffer.interpolant()
    buffer.shift()
    buffer.shift()
    assert_(len(buffer) == 0)
    with pytest.raises(ValueError):
        KnotBuffer(1, capacity=1)
