# -- SPH Time Integration -- #

'''
Time integration for the sandbox fluid particles.

Implements the Symplectic (semi-implicit) Euler integrator: the
velocity is kicked first and the position drifts with the updated
velocity. It is first-order but keeps the long-run energy behavior
bounded, which matters at frame-rate time steps.

References:
-----------
Hairer et al. (2003) -- Geometric Numerical Integration
'''

from __future__ import annotations

from typing import Protocol

import numpy as np

from physicsSandbox.StringFluid.sph.particles import ParticleSystem


######################################################################
# -- Time Integrator Protocol -- #
######################################################################

class TimeIntegrator(Protocol):
    '''Protocol for time integration schemes.'''

    def integrate(
        self, particles: ParticleSystem, accelerations: np.ndarray, dt: float
    ) -> None:
        '''
        Advance particles by one time step under the given accelerations.

        Parameters:
        -----------
        particles : ParticleSystem
            Particle system to advance
        accelerations : np.ndarray
            Per-particle accelerations, shape (N, 2)
        dt : float
            Time step size
        '''
        ...


######################################################################
# -- Symplectic Euler Integrator -- #
######################################################################

class SymplecticEuler:
    '''
    Symplectic (semi-implicit) Euler integrator.

    Update sequence:
        v(t+dt) = v(t) + a(t) * dt      (kick)
        x(t+dt) = x(t) + v(t+dt) * dt   (drift)
    '''

    def integrate(
        self, particles: ParticleSystem, accelerations: np.ndarray, dt: float
    ) -> None:
        particles.velocities += accelerations * dt
        particles.positions += particles.velocities * dt
