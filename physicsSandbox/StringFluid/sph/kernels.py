# -- SPH Smoothing Kernels -- #

'''
Smoothing kernel functions for the sandbox SPH fluid.

Implements the three compactly supported kernels used by the
fluid solver and the string/fluid coupling:

    Density:        W(d, r)  = (r - d)^2 / (pi * r^4 / 6)
    Pressure slope: S(d, r)  = 12 * (r - d) / (pi * r^4)
    Viscosity:      V(d, r)  = (r^2 - d^2)^2 / (pi * r^4 / 6)

All three evaluate to exactly zero for d >= r. The pressure slope
is the magnitude of dW/dd and is always returned as a positive
number; the solver supplies the direction.

Each kernel offers a scalar `evaluate` and a vectorized
`evaluateBatch` over NumPy distance arrays.

References:
-----------
Mueller et al. (2003) -- Particle-based fluid simulation for
    interactive applications
Monaghan (1992) -- Smoothed Particle Hydrodynamics
'''

from __future__ import annotations

import math
from typing import Protocol

import numpy as np

from physicsSandbox.StringFluid import constants as const


######################################################################
# -- Kernel Protocol -- #
######################################################################

class SmoothingKernel(Protocol):
    '''Protocol for sandbox smoothing kernels.'''

    def evaluate(self, dist: float, radius: float) -> float:
        '''
        Evaluate the kernel at a single distance.

        Parameters:
        -----------
        dist : float
            Distance between the two samples
        radius : float
            Kernel support radius

        Returns:
        --------
        float : Kernel value (0 beyond the support radius)
        '''
        ...

    def evaluateBatch(self, dist: np.ndarray, radius: float) -> np.ndarray:
        '''Vectorized evaluation over an array of distances.'''
        ...


def _volume(radius: float) -> float:
    '''Normalization shared by the density and viscosity kernels: pi r^4 / 6.'''
    return const.kernelVolumeFactor * radius ** 4


######################################################################
# -- Density Kernel -- #
######################################################################

class DensityKernel:
    '''
    Spiky-squared density kernel.

    W(d, r) = (r - d)^2 / (pi * r^4 / 6),  d < r

    Peak value at d = 0 is 6 / (pi * r^2).
    '''

    def evaluate(self, dist: float, radius: float) -> float:
        if dist >= radius:
            return 0.0
        value = radius - dist
        return value * value / _volume(radius)

    def evaluateBatch(self, dist: np.ndarray, radius: float) -> np.ndarray:
        dist = np.asarray(dist, dtype=float)
        value = np.maximum(radius - dist, 0.0)
        return np.where(dist < radius, value * value / _volume(radius), 0.0)


######################################################################
# -- Pressure Slope Kernel -- #
######################################################################

class PressureSlopeKernel:
    '''
    Slope of the density kernel, used for pressure forces.

    S(d, r) = 12 * (r - d) / (pi * r^4),  d < r

    This is |dW/dd| for the density kernel, so forces built from it
    push along the pair axis with a strength that falls linearly to
    zero at the support radius.
    '''

    def evaluate(self, dist: float, radius: float) -> float:
        if dist >= radius:
            return 0.0
        scale = 12.0 / (math.pi * radius ** 4)
        return (radius - dist) * scale

    def evaluateBatch(self, dist: np.ndarray, radius: float) -> np.ndarray:
        dist = np.asarray(dist, dtype=float)
        scale = 12.0 / (math.pi * radius ** 4)
        return np.where(dist < radius, (radius - dist) * scale, 0.0)


######################################################################
# -- Viscosity Kernel -- #
######################################################################

class ViscosityKernel:
    '''
    Smooth (poly-style) viscosity kernel.

    V(d, r) = (r^2 - d^2)^2 / (pi * r^4 / 6),  d < r

    Peak value at d = 0 is 6 / pi, independent of r.
    '''

    def evaluate(self, dist: float, radius: float) -> float:
        if dist >= radius:
            return 0.0
        value = radius * radius - dist * dist
        return value * value / _volume(radius)

    def evaluateBatch(self, dist: np.ndarray, radius: float) -> np.ndarray:
        dist = np.asarray(dist, dtype=float)
        value = radius * radius - dist * dist
        return np.where(dist < radius, value * value / _volume(radius), 0.0)


######################################################################
# -- Equation of State -- #
######################################################################

def densityToPressure(
    density: np.ndarray | float,
    targetDensity: float,
    pressureMultiplier: float,
) -> np.ndarray | float:
    '''
    Linear equation of state.

    p = (rho - rho_0) * k

    Negative pressure is kept: particles below rest density attract.

    Parameters:
    -----------
    density : np.ndarray | float
        Particle density (scalar or array)
    targetDensity : float
        Rest density rho_0
    pressureMultiplier : float
        Stiffness k

    Returns:
    --------
    np.ndarray | float : Pressure with the same shape as density
    '''
    return (density - targetDensity) * pressureMultiplier


def sharedPressure(
    densityA: np.ndarray | float,
    densityB: np.ndarray | float,
    targetDensity: float,
    pressureMultiplier: float,
) -> np.ndarray | float:
    '''
    Pressure shared by a particle pair: mean of both converted pressures.

    Symmetric in its two density arguments, so both members of a pair
    see the same pressure magnitude.
    '''
    pressureA = densityToPressure(densityA, targetDensity, pressureMultiplier)
    pressureB = densityToPressure(densityB, targetDensity, pressureMultiplier)
    return (pressureA + pressureB) / 2.0
