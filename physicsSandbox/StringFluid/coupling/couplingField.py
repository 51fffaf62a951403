# -- String to Fluid Force Coupling -- #

'''
One-way coupling from the vibrating string into the SPH fluid.

Every fast-moving interior string node pushes nearby fluid particles
radially away from itself. The push scales with the node speed and
falls off with the density kernel over the influence radius:

    F_i = sum_k unit(x_i - s_k) * |v_k| * W(|x_i - s_k|, R) * c

for nodes k with |v_k| > velocityThreshold and |x_i - s_k| < R.
Particles whose total |F_i|^2 exceeds forceThresholdSq receive F_i
through the fluid's applyExternalForce; smaller totals are dropped.

The field only reads string state and only calls applyExternalForce
on the fluid, so it can sit between the two solvers without owning
either of them.
'''

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import numpy as np

from physicsSandbox.StringFluid import constants as const
from physicsSandbox.StringFluid.sph.kernels import DensityKernel


######################################################################
# -- Collaborator Protocols -- #
######################################################################

class StringStateReader(Protocol):
    '''Read access to the string node state.'''

    def getStringPositions(self) -> np.ndarray:
        ...

    def getStringVelocities(self) -> np.ndarray:
        ...


class FluidForceTarget(Protocol):
    '''Fluid capabilities the coupling needs.'''

    def getParticleCount(self) -> int:
        ...

    def getParticlePositions(self) -> np.ndarray:
        ...

    def applyExternalForce(self, index: int, force: np.ndarray) -> None:
        ...


######################################################################
# -- Coupling Configuration -- #
######################################################################

@dataclass
class CouplingConfig:
    '''
    Parameters of the string-to-fluid force field.

    Parameters:
    -----------
    influenceRadius : float
        Support radius of the push around each node
    forceMultiplier : float
        Overall force scale c
    velocityThreshold : float
        Nodes slower than this exert no force
    forceThresholdSq : float
        Squared force magnitude below which a particle is skipped
    '''

    influenceRadius: float = const.influenceRadius
    forceMultiplier: float = const.forceMultiplier
    velocityThreshold: float = const.velocityThreshold
    forceThresholdSq: float = const.forceThresholdSq

    def validate(self) -> None:
        '''Raise ValueError for a non-positive radius or negative thresholds.'''
        if self.influenceRadius <= 0.0:
            raise ValueError(f'influenceRadius must be positive, got {self.influenceRadius}')
        if self.velocityThreshold < 0.0 or self.forceThresholdSq < 0.0:
            raise ValueError('Coupling thresholds cannot be negative')


######################################################################
# -- Coupling Field -- #
######################################################################

class CouplingField:
    '''
    Converts string node motion into external forces on fluid particles.

    Parameters:
    -----------
    config : CouplingConfig
        Coupling configuration
    '''

    def __init__(self, config: CouplingConfig | None = None) -> None:
        if config is None:
            config = CouplingConfig()
        config.validate()
        self._config = config
        self._kernel = DensityKernel()

    def computeForces(
        self,
        particlePositions: np.ndarray,
        nodePositions: np.ndarray,
        nodeVelocities: np.ndarray,
    ) -> np.ndarray:
        '''
        Total coupling force on every particle, before thresholding.

        Only interior nodes (all but the first and last) contribute.

        Parameters:
        -----------
        particlePositions : np.ndarray
            Fluid positions, shape (N, 2)
        nodePositions : np.ndarray
            String node positions including anchors, shape (M+2, 2)
        nodeVelocities : np.ndarray
            String node velocities including anchors, shape (M+2, 2)

        Returns:
        --------
        np.ndarray : Forces, shape (N, 2)

        Raises:
        -------
        ValueError : If positions and velocities differ in length
        '''
        cfg = self._config
        nodePositions = np.asarray(nodePositions, dtype=float)
        nodeVelocities = np.asarray(nodeVelocities, dtype=float)
        if len(nodePositions) != len(nodeVelocities):
            raise ValueError(
                f'String has {len(nodePositions)} positions but {len(nodeVelocities)} velocities'
            )

        particlePositions = np.asarray(particlePositions, dtype=float).reshape(-1, 2)
        forces = np.zeros_like(particlePositions)

        interiorPos = nodePositions[1:-1]
        speeds = np.linalg.norm(nodeVelocities[1:-1], axis=1)
        active = speeds > cfg.velocityThreshold
        if not np.any(active) or len(particlePositions) == 0:
            return forces

        activePos = interiorPos[active]
        activeSpeeds = speeds[active]

        # (N, K, 2) offsets from node to particle
        offsets = particlePositions[:, np.newaxis, :] - activePos[np.newaxis, :, :]
        dist = np.linalg.norm(offsets, axis=2)

        inRange = (dist < cfg.influenceRadius) & (dist > 0.0)
        safeDist = np.where(inRange, dist, 1.0)
        dirs = offsets / safeDist[..., np.newaxis]

        weights = self._kernel.evaluateBatch(dist, cfg.influenceRadius)
        magnitude = np.where(inRange, activeSpeeds[np.newaxis, :] * weights * cfg.forceMultiplier, 0.0)

        forces += np.sum(dirs * magnitude[..., np.newaxis], axis=1)
        return forces

    def apply(self, string: StringStateReader, fluid: FluidForceTarget) -> int:
        '''
        Push fluid particles away from moving string nodes.

        Parameters:
        -----------
        string : StringStateReader
            String whose node positions and velocities are read
        fluid : FluidForceTarget
            Fluid that receives the external forces

        Returns:
        --------
        int : Number of particles that received a force
        '''
        forces = self.computeForces(
            fluid.getParticlePositions(),
            string.getStringPositions(),
            string.getStringVelocities(),
        )

        forceSq = np.sum(forces * forces, axis=1)
        forced = np.nonzero(forceSq > self._config.forceThresholdSq)[0]
        for index in forced:
            fluid.applyExternalForce(int(index), forces[index])

        return len(forced)

    @property
    def config(self) -> CouplingConfig:
        '''Coupling configuration.'''
        return self._config
