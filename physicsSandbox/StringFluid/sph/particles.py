# -- SPH Particle System -- #

'''
Dataclass holding the fluid particle state.

Stores positions, velocities, predicted positions, densities and the
two transient per-step force buffers as contiguous NumPy arrays, one
row per particle, for vectorized per-pass updates.
'''

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np


@dataclass
class ParticleSystem:
    '''
    Fluid particle state.

    Vector quantities have shape (N, 2), scalars shape (N,).

    Parameters:
    -----------
    positions : np.ndarray
        Particle positions
    velocities : np.ndarray
        Particle velocities
    predictedPositions : np.ndarray
        position + velocity * dt, valid only during the current step
    densities : np.ndarray
        Densities from the last density pass
    pressureForces : np.ndarray
        Pressure forces from the last pressure pass
    externalForces : np.ndarray
        Forces injected since the last integration (cleared every step)
    '''

    positions: np.ndarray
    velocities: np.ndarray
    predictedPositions: np.ndarray
    densities: np.ndarray
    pressureForces: np.ndarray
    externalForces: np.ndarray

    @property
    def nParticles(self) -> int:
        '''Number of fluid particles.'''
        return self.positions.shape[0]

    def kineticEnergy(self, particleMass: float) -> float:
        '''
        Total kinetic energy.

        KE = (1/2) * m * sum_i |v_i|^2
        '''
        speedsSq = np.sum(self.velocities * self.velocities, axis=1)
        return float(0.5 * particleMass * np.sum(speedsSq))

    def maxSpeed(self) -> float:
        '''Largest particle speed.'''
        if self.nParticles == 0:
            return 0.0
        return float(np.max(np.linalg.norm(self.velocities, axis=1)))

    def maxDensityError(self, targetDensity: float) -> float:
        '''Largest relative density error max |rho_i - rho_0| / rho_0.'''
        if self.nParticles == 0:
            return 0.0
        return float(np.max(np.abs(self.densities - targetDensity)) / targetDensity)

    @classmethod
    def fromPositions(
        cls,
        positions: np.ndarray,
        velocities: np.ndarray | None = None,
    ) -> ParticleSystem:
        '''
        Create a particle system from host-supplied initial state.

        Parameters:
        -----------
        positions : np.ndarray
            Initial positions, shape (N, 2)
        velocities : np.ndarray | None
            Initial velocities, shape (N, 2); zero when omitted

        Returns:
        --------
        ParticleSystem : Particle system with cleared force buffers

        Raises:
        -------
        ValueError : If the arrays are empty or their shapes differ
        '''
        positions = np.array(positions, dtype=float).reshape(-1, 2)
        nParticles = len(positions)
        if nParticles == 0:
            raise ValueError('A fluid needs at least one particle')

        if velocities is None:
            velocities = np.zeros((nParticles, 2))
        else:
            velocities = np.array(velocities, dtype=float).reshape(-1, 2)
            if velocities.shape != positions.shape:
                raise ValueError(
                    f'Got {len(velocities)} velocities for {nParticles} positions'
                )

        return cls(
            positions=positions,
            velocities=velocities,
            predictedPositions=positions.copy(),
            densities=np.zeros(nParticles),
            pressureForces=np.zeros((nParticles, 2)),
            externalForces=np.zeros((nParticles, 2)),
        )

    @classmethod
    def createBlock(
        cls,
        nParticles: int,
        spacing: float,
        center: np.ndarray | None = None,
    ) -> ParticleSystem:
        '''
        Create particles on a square-ish grid block.

        Fills rows of floor(sqrt(N)) particles, centered on `center`
        (the origin by default), row by row from the bottom.

        Parameters:
        -----------
        nParticles : int
            Number of particles
        spacing : float
            Distance between neighboring particles
        center : np.ndarray | None
            Block center

        Returns:
        --------
        ParticleSystem : Particles at rest
        '''
        if nParticles <= 0:
            raise ValueError(f'A fluid needs at least one particle, got {nParticles}')

        perRow = max(1, int(math.sqrt(nParticles)))
        perCol = (nParticles - 1) // perRow + 1

        indices = np.arange(nParticles)
        x = ((indices % perRow) - (perRow - 1) / 2.0) * spacing
        y = ((indices // perRow) - (perCol - 1) / 2.0) * spacing
        positions = np.column_stack([x, y])

        if center is not None:
            positions += np.asarray(center, dtype=float)

        return cls.fromPositions(positions)
