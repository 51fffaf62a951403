# -- Smoothing Kernel Tests -- #

'''
Compact support, peak values and equation of state checks for the
sandbox smoothing kernels.
'''

import math

import numpy as np
import pytest

from physicsSandbox.StringFluid.sph.kernels import (
    DensityKernel,
    PressureSlopeKernel,
    ViscosityKernel,
    densityToPressure,
    sharedPressure,
)


KERNELS = [DensityKernel(), PressureSlopeKernel(), ViscosityKernel()]


@pytest.mark.parametrize('kernel', KERNELS)
def testKernelsVanishAtAndBeyondSupport(kernel):
    for radius in (0.15, 0.5, 1.0):
        assert kernel.evaluate(radius, radius) == 0.0
        assert kernel.evaluate(radius * 1.5, radius) == 0.0
        batch = kernel.evaluateBatch(np.array([radius, radius * 2.0, 10.0]), radius)
        assert np.all(batch == 0.0)


@pytest.mark.parametrize('kernel', KERNELS)
def testKernelsArePositiveInsideSupport(kernel):
    dist = np.linspace(0.0, 0.49, 25)
    assert np.all(kernel.evaluateBatch(dist, 0.5) > 0.0)


@pytest.mark.parametrize('kernel', KERNELS)
def testScalarAndBatchAgree(kernel):
    dist = np.array([0.0, 0.1, 0.25, 0.4, 0.5, 0.7])
    batch = kernel.evaluateBatch(dist, 0.5)
    scalar = np.array([kernel.evaluate(float(d), 0.5) for d in dist])
    assert batch == pytest.approx(scalar)


def testDensityKernelPeak():
    radius = 0.5
    expected = 6.0 / (math.pi * radius ** 2)
    assert DensityKernel().evaluate(0.0, radius) == pytest.approx(expected)


def testPressureSlopePeak():
    radius = 0.5
    expected = 12.0 / (math.pi * radius ** 3)
    assert PressureSlopeKernel().evaluate(0.0, radius) == pytest.approx(expected)


def testViscosityPeakIsIndependentOfRadius():
    for radius in (0.2, 0.5, 2.0):
        assert ViscosityKernel().evaluate(0.0, radius) == pytest.approx(6.0 / math.pi)


@pytest.mark.parametrize('kernel', KERNELS)
def testKernelsDecreaseWithDistance(kernel):
    values = kernel.evaluateBatch(np.linspace(0.0, 0.5, 30), 0.5)
    assert np.all(np.diff(values) <= 0.0)


def testEquationOfStateIsMonotonic():
    densities = np.linspace(0.0, 10.0, 50)
    pressures = densityToPressure(densities, targetDensity=2.75, pressureMultiplier=0.5)
    assert np.all(np.diff(pressures) > 0.0)
    assert densityToPressure(2.75, 2.75, 0.5) == 0.0
    assert densityToPressure(1.0, 2.75, 0.5) < 0.0


def testSharedPressureIsSymmetric():
    assert sharedPressure(3.0, 7.0, 2.75, 0.5) == sharedPressure(7.0, 3.0, 2.75, 0.5)
    assert sharedPressure(3.0, 7.0, 2.75, 0.5) == pytest.approx(
        (densityToPressure(3.0, 2.75, 0.5) + densityToPressure(7.0, 2.75, 0.5)) / 2.0
    )
