# -- Sandbox SPH Fluid Solver -- #

'''
Interactive SPH solver for the sandbox fluid.

Pressure comes from a linear equation of state, p = (rho - rho_0) * k,
so particles below rest density attract and particles above it
repel. Each pair exchanges forces through the mean of both pressures,
which gives both members the same pressure magnitude.

All passes are vectorized over neighbor pairs. Every pass reads the
arrays written by the previous pass and writes each particle's own
fields exactly once, so the passes behave as full barriers: no
particle sees a half-updated neighbor.

Algorithm per time step:
    1. Rebuild the spatial hash grid (cell size = smoothing radius)
    2. Density pass at predicted positions (fluid neighbors + all solids)
    3. Viscosity pass, integrated straight into velocity
    4. Pressure pass (fluid neighbors + all solids)
    5. Integrate pressure, external force and gravity (Symplectic Euler)
    6. Resolve world bounds and obstacle collisions
    7. Clear the external force buffer

References:
-----------
Mueller et al. (2003) -- Particle-based fluid simulation for
    interactive applications
Clavet et al. (2005) -- Particle-based viscoelastic fluid simulation
'''

from __future__ import annotations

from typing import Iterable

import numpy as np

from physicsSandbox.StringFluid.sph.protocols import FluidConfig, AxisAlignedBox, SimulationState
from physicsSandbox.StringFluid.sph.kernels import (
    DensityKernel,
    PressureSlopeKernel,
    ViscosityKernel,
    sharedPressure,
)
from physicsSandbox.StringFluid.sph.particles import ParticleSystem
from physicsSandbox.StringFluid.sph.neighborSearch import SpatialHashGrid
from physicsSandbox.StringFluid.sph.boundaryHandling import BoundaryField, CollisionHandler
from physicsSandbox.StringFluid.sph.timeIntegration import SymplecticEuler


#--------------------------------------------------------------------#
# -- Pair Pressure Force -- #
#--------------------------------------------------------------------#

def pressurePairForces(
    offsets: np.ndarray,
    dist: np.ndarray,
    selfDensities: np.ndarray,
    otherDensities: np.ndarray,
    radius: float,
    targetDensity: float,
    pressureMultiplier: float,
    particleMass: float,
    rng: np.random.Generator,
) -> np.ndarray:
    '''
    Pressure force on "self" from each "other" sample.

    F = -shared * dir * S(d, r) * m / rho_other

    where dir = offset / d points from self toward other and
    shared = (p(rho_self) + p(rho_other)) / 2. Positive shared pressure
    pushes self away from other. Coincident samples (d = 0) get a
    random direction drawn uniformly from [-1, 1]^2.

    Parameters:
    -----------
    offsets : np.ndarray
        other - self, shape (..., 2)
    dist : np.ndarray
        |offsets|, shape (...)
    selfDensities : np.ndarray
        Density of self, broadcastable to dist
    otherDensities : np.ndarray
        Density of other, broadcastable to dist
    radius : float
        Kernel support radius
    targetDensity : float
        Rest density
    pressureMultiplier : float
        Equation of state stiffness
    particleMass : float
        Mass of the other sample
    rng : np.random.Generator
        Source for the zero-distance direction

    Returns:
    --------
    np.ndarray : Forces, shape (..., 2)
    '''
    dist = np.asarray(dist, dtype=float)
    coincident = dist <= 0.0
    safeDist = np.where(coincident, 1.0, dist)
    dirs = np.asarray(offsets, dtype=float) / safeDist[..., np.newaxis]
    if np.any(coincident):
        dirs[coincident] = rng.uniform(-1.0, 1.0, size=(int(np.sum(coincident)), 2))

    slope = PressureSlopeKernel().evaluateBatch(dist, radius)
    shared = sharedPressure(otherDensities, selfDensities, targetDensity, pressureMultiplier)
    magnitude = -shared * slope * particleMass / otherDensities

    return magnitude[..., np.newaxis] * dirs


#--------------------------------------------------------------------#
# -- Fluid Solver -- #
#--------------------------------------------------------------------#

class FluidSolver:
    '''
    SPH fluid solver with solid boundary particles and box obstacles.

    Owns the particle arrays and the spatial hash grid. External code
    talks to it through the accessor methods (getParticleCount,
    getParticlePosition, applyExternalForce) and by calling step(dt).

    Parameters:
    -----------
    config : FluidConfig
        Fluid configuration
    particles : ParticleSystem
        Initial particle state (ownership passes to the solver)
    obstacles : Iterable[AxisAlignedBox]
        Box obstacles the fluid collides with
    boundaryField : BoundaryField | None
        Solid particles (defaults to a ring built from the config)

    Raises:
    -------
    ValueError : If the configuration is invalid or there are no particles
    '''

    def __init__(
        self,
        config: FluidConfig,
        particles: ParticleSystem,
        obstacles: Iterable[AxisAlignedBox] = (),
        boundaryField: BoundaryField | None = None,
    ) -> None:
        config.validate()
        if particles.nParticles == 0:
            raise ValueError('FluidSolver needs at least one particle')

        self._config = config
        self._particles = particles
        self._obstacles: list[AxisAlignedBox] = list(obstacles)

        if boundaryField is None:
            boundaryField = BoundaryField(
                boundsSize=config.boundsSize,
                spacingRadius=config.solidSpacingRadius,
                targetDensity=config.targetDensity,
                solidCount=config.solidCount,
            )
        self._boundary = boundaryField

        self._collisions = CollisionHandler(
            halfBounds=config.halfBounds,
            particleRadius=config.particleRadius,
            collisionDamping=config.collisionDamping,
        )
        self._grid = SpatialHashGrid()
        self._integrator = SymplecticEuler()
        self._densityKernel = DensityKernel()
        self._viscosityKernel = ViscosityKernel()
        self._rng = np.random.default_rng(config.randomSeed)

        empty = np.empty(0, dtype=np.int64)
        self._neighborPairs: tuple[np.ndarray, np.ndarray, np.ndarray] = (empty, empty, np.empty(0))
        self._time: float = 0.0
        self._lastDt: float = 0.0
        self._step: int = 0

    ######################################################################
    # -- Main Time Step -- #
    ######################################################################

    def step(self, dt: float) -> None:
        '''
        Advance the fluid by one time step.

        Parameters:
        -----------
        dt : float
            Time step size (must be positive)
        '''
        if dt <= 0.0:
            raise ValueError(f'Time step must be positive, got {dt}')

        p = self._particles

        # 1. Rebuild neighbor grid from current positions
        self._grid.rebuild(p.positions, self._config.smoothingRadius)

        # 2. Density at predicted positions
        self._computeDensities(dt)

        # 3. Viscosity (updates velocity)
        self._neighborPairs = self._grid.queryNeighbors(p.positions, self._config.smoothingRadius)
        self._applyViscosity(dt)

        # 4. Pressure forces
        self._computePressureForces()

        # 5-7. Integrate, collide, clear external forces
        self._integrateAndCollide(dt)

        self._time += dt
        self._lastDt = dt
        self._step += 1

    ######################################################################
    # -- Density Pass -- #
    ######################################################################

    def _computeDensities(self, dt: float) -> None:
        '''
        Density by kernel summation at predicted positions.

        rho_i = sum_j m * W(|x*_i - x_j|, h) + sum_s m * W(|x*_i - x_s|, h_solid)

        x*_i = x_i + v_i * dt is the predicted position; fluid neighbors
        x_j are taken at their current (grid) positions, solids x_s are
        scanned linearly.
        '''
        p = self._particles
        cfg = self._config
        kernel = self._densityKernel

        p.predictedPositions[:] = p.positions + p.velocities * dt

        densities = np.zeros(p.nParticles)
        queryIdx, _, dist = self._grid.queryNeighbors(p.predictedPositions, cfg.smoothingRadius)
        np.add.at(densities, queryIdx, cfg.particleMass * kernel.evaluateBatch(dist, cfg.smoothingRadius))

        if self._boundary.count > 0:
            solidOffsets = p.predictedPositions[:, np.newaxis, :] - self._boundary.positions[np.newaxis, :, :]
            solidDist = np.linalg.norm(solidOffsets, axis=2)
            solidWeights = kernel.evaluateBatch(solidDist, cfg.solidInfluenceRadius)
            densities += cfg.particleMass * np.sum(solidWeights, axis=1)

        p.densities[:] = densities
        self._requirePositiveDensity()

    def _requirePositiveDensity(self) -> None:
        '''Raise if any particle would divide by a non-positive density.'''
        bad = np.nonzero(self._particles.densities <= 0.0)[0]
        if len(bad) > 0:
            raise ValueError(
                f'{len(bad)} particle(s) have non-positive density '
                f'(first indices: {bad[:10].tolist()}); the time step is too '
                f'large for the smoothing radius or particles left the grid'
            )

    ######################################################################
    # -- Viscosity Pass -- #
    ######################################################################

    def _applyViscosity(self, dt: float) -> None:
        '''
        Velocity-difference viscosity integrated into velocity.

        F_i = mu * sum_j (v_j - v_i) * V(|x_i - x_j|, h)
        v_i += F_i / rho_i * dt

        All differences use the velocities from before this pass.
        '''
        p = self._particles
        cfg = self._config

        queryIdx, neighborIdx, dist = self._neighborPairs
        influence = self._viscosityKernel.evaluateBatch(dist, cfg.smoothingRadius)

        forces = np.zeros_like(p.velocities)
        velocityDiff = p.velocities[neighborIdx] - p.velocities[queryIdx]
        np.add.at(forces, queryIdx, velocityDiff * influence[:, np.newaxis])
        forces *= cfg.viscosityStrength

        p.velocities += forces / p.densities[:, np.newaxis] * dt

    ######################################################################
    # -- Pressure Pass -- #
    ######################################################################

    def _computePressureForces(self) -> None:
        '''
        Symmetric pressure forces from fluid neighbors and every solid.

        Fluid pairs use the smoothing radius; solids use the solid
        influence radius and their fixed density.
        '''
        p = self._particles
        cfg = self._config

        queryIdx, neighborIdx, dist = self._neighborPairs
        notSelf = queryIdx != neighborIdx
        queryIdx = queryIdx[notSelf]
        neighborIdx = neighborIdx[notSelf]
        dist = dist[notSelf]

        forces = np.zeros_like(p.positions)

        pairForces = pressurePairForces(
            offsets=p.positions[neighborIdx] - p.positions[queryIdx],
            dist=dist,
            selfDensities=p.densities[queryIdx],
            otherDensities=p.densities[neighborIdx],
            radius=cfg.smoothingRadius,
            targetDensity=cfg.targetDensity,
            pressureMultiplier=cfg.pressureMultiplier,
            particleMass=cfg.particleMass,
            rng=self._rng,
        )
        np.add.at(forces, queryIdx, pairForces)

        if self._boundary.count > 0:
            solidOffsets = self._boundary.positions[np.newaxis, :, :] - p.positions[:, np.newaxis, :]
            solidForces = pressurePairForces(
                offsets=solidOffsets,
                dist=np.linalg.norm(solidOffsets, axis=2),
                selfDensities=p.densities[:, np.newaxis],
                otherDensities=self._boundary.densities[np.newaxis, :],
                radius=cfg.solidInfluenceRadius,
                targetDensity=cfg.targetDensity,
                pressureMultiplier=cfg.pressureMultiplier,
                particleMass=cfg.particleMass,
                rng=self._rng,
            )
            forces += np.sum(solidForces, axis=1)

        p.pressureForces[:] = forces

    ######################################################################
    # -- Integration and Collisions -- #
    ######################################################################

    def _integrateAndCollide(self, dt: float) -> None:
        '''
        a_i = (F_pressure + F_external) / rho_i + g

        then kick-drift, collide, and clear the external force buffer.
        '''
        p = self._particles

        accelerations = (p.pressureForces + p.externalForces) / p.densities[:, np.newaxis]
        accelerations[:, 1] -= self._config.gravity

        self._integrator.integrate(p, accelerations, dt)
        self._collisions.resolve(p, self._obstacles)

        p.externalForces[:] = 0.0

    ######################################################################
    # -- External API -- #
    ######################################################################

    def getParticleCount(self) -> int:
        '''Number of fluid particles.'''
        return self._particles.nParticles

    def getParticlePosition(self, index: int) -> np.ndarray:
        '''
        Position of one particle, or the zero vector when out of range.

        Parameters:
        -----------
        index : int
            Particle index

        Returns:
        --------
        np.ndarray : Copy of the position (2,)
        '''
        if 0 <= index < self._particles.nParticles:
            return self._particles.positions[index].copy()
        return np.zeros(2)

    def getParticlePositions(self) -> np.ndarray:
        '''All particle positions as a read-only view, shape (N, 2).'''
        view = self._particles.positions.view()
        view.flags.writeable = False
        return view

    def applyExternalForce(self, index: int, force: np.ndarray) -> None:
        '''
        Accumulate an external force on one particle.

        The force becomes an acceleration at the next integration,
        divided by the density computed in that step. Out-of-range
        indices are ignored.

        Parameters:
        -----------
        index : int
            Particle index
        force : np.ndarray
            Force vector (2,)
        '''
        if 0 <= index < self._particles.nParticles:
            self._particles.externalForces[index] += np.asarray(force, dtype=float)

    def addObstacle(self, box: AxisAlignedBox) -> None:
        '''Register a box obstacle.'''
        self._obstacles.append(box)

    ######################################################################
    # -- Properties -- #
    ######################################################################

    @property
    def particles(self) -> ParticleSystem:
        '''Access the particle system.'''
        return self._particles

    @property
    def boundaryField(self) -> BoundaryField:
        '''Solid boundary particles.'''
        return self._boundary

    @property
    def obstacles(self) -> list[AxisAlignedBox]:
        '''Registered box obstacles.'''
        return self._obstacles

    @property
    def config(self) -> FluidConfig:
        '''Fluid configuration.'''
        return self._config

    @property
    def grid(self) -> SpatialHashGrid:
        '''Neighbor grid from the last step.'''
        return self._grid

    @property
    def time(self) -> float:
        '''Accumulated simulation time.'''
        return self._time

    @property
    def stepCount(self) -> int:
        '''Number of completed steps.'''
        return self._step

    def kineticEnergy(self) -> float:
        '''Total fluid kinetic energy.'''
        return self._particles.kineticEnergy(self._config.particleMass)

    @property
    def currentState(self) -> SimulationState:
        '''Fluid-only diagnostic snapshot (string fields are zero).'''
        p = self._particles
        return SimulationState(
            time=self._time,
            step=self._step,
            dt=self._lastDt,
            fluidKineticEnergy=self.kineticEnergy(),
            stringKineticEnergy=0.0,
            maxFluidSpeed=p.maxSpeed(),
            maxStringSpeed=0.0,
            maxDensityError=p.maxDensityError(self._config.targetDensity),
        )
