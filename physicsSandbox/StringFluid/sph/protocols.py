# -- Fluid Configuration and Diagnostics -- #

'''
Configuration dataclasses and diagnostic snapshots for the sandbox fluid.

Defines the fluid configuration (FluidConfig), the axis-aligned
obstacle shape (AxisAlignedBox), and the per-step diagnostic
snapshot (SimulationState) shared by the fluid solver and the
coupled simulation.
'''

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from physicsSandbox.StringFluid import constants as const


######################################################################
# -- Fluid Configuration -- #
######################################################################

@dataclass
class FluidConfig:
    '''
    Configuration for the SPH fluid.

    The world rectangle is centered on the origin. Solid (boundary)
    particles sit just outside it.

    Parameters:
    -----------
    boundsSize : np.ndarray
        Full width and height of the world rectangle
    smoothingRadius : float
        Kernel support radius for fluid-fluid interactions
        (also the neighbor grid cell size)
    solidInfluenceRadius : float
        Kernel support radius for fluid-solid interactions
    targetDensity : float
        Rest density rho_0 of the equation of state
    pressureMultiplier : float
        Equation of state stiffness
    viscosityStrength : float
        Viscosity force scale
    particleMass : float
        Mass of every fluid and solid particle
    particleRadius : float
        Collision radius against walls and obstacles
    collisionDamping : float
        Fraction of normal velocity kept on collision
    gravity : float
        Downward acceleration on fluid particles
    solidCount : int | None
        Number of solid particles (None = complete perimeter ring)
    solidSpacingRadius : float
        Half the spacing between neighboring solid particles
    randomSeed : int | None
        Seed for the zero-distance direction fallback
    '''

    boundsSize: np.ndarray = field(
        default_factory=lambda: np.array([const.boundsWidth, const.boundsHeight])
    )
    smoothingRadius: float = const.smoothingRadius
    solidInfluenceRadius: float = const.solidInfluenceRadius
    targetDensity: float = const.targetDensity
    pressureMultiplier: float = const.pressureMultiplier
    viscosityStrength: float = const.viscosityStrength
    particleMass: float = const.particleMass
    particleRadius: float = const.particleRadius
    collisionDamping: float = const.collisionDamping
    gravity: float = const.fluidGravity
    solidCount: int | None = const.solidCount
    solidSpacingRadius: float = const.solidSpacingRadius
    randomSeed: int | None = const.randomSeed

    def __post_init__(self) -> None:
        self.boundsSize = np.asarray(self.boundsSize, dtype=float)

    @property
    def halfBounds(self) -> np.ndarray:
        '''Half-extents of the world rectangle.'''
        return self.boundsSize / 2.0

    def validate(self) -> None:
        '''
        Check the configuration and raise on values the solver cannot run with.

        Raises:
        -------
        ValueError : If any radius, density, mass or bound is non-positive,
            or the solid count is negative
        '''
        if self.boundsSize.shape != (2,) or np.any(self.boundsSize <= 0.0):
            raise ValueError(f'boundsSize must be two positive extents, got {self.boundsSize}')
        if self.smoothingRadius <= 0.0:
            raise ValueError(f'smoothingRadius must be positive, got {self.smoothingRadius}')
        if self.solidInfluenceRadius <= 0.0:
            raise ValueError(
                f'solidInfluenceRadius must be positive, got {self.solidInfluenceRadius}'
            )
        if self.targetDensity <= 0.0:
            raise ValueError(f'targetDensity must be positive, got {self.targetDensity}')
        if self.particleMass <= 0.0:
            raise ValueError(f'particleMass must be positive, got {self.particleMass}')
        if self.solidCount is not None and self.solidCount < 0:
            raise ValueError(f'solidCount cannot be negative, got {self.solidCount}')
        if self.solidSpacingRadius <= 0.0:
            raise ValueError(
                f'solidSpacingRadius must be positive, got {self.solidSpacingRadius}'
            )


######################################################################
# -- Obstacles -- #
######################################################################

@dataclass
class AxisAlignedBox:
    '''
    Static axis-aligned box obstacle.

    The host may move a box between steps by assigning a new center;
    the solver reads the current center every step.

    Parameters:
    -----------
    center : np.ndarray
        Box center
    size : np.ndarray
        Full width and height
    '''

    center: np.ndarray
    size: np.ndarray

    def __post_init__(self) -> None:
        self.center = np.asarray(self.center, dtype=float)
        self.size = np.asarray(self.size, dtype=float)
        if np.any(self.size <= 0.0):
            raise ValueError(f'Obstacle size must be positive, got {self.size}')

    @property
    def boxMin(self) -> np.ndarray:
        '''Lower-left corner.'''
        return self.center - self.size / 2.0

    @property
    def boxMax(self) -> np.ndarray:
        '''Upper-right corner.'''
        return self.center + self.size / 2.0


######################################################################
# -- Simulation State -- #
######################################################################

@dataclass
class SimulationState:
    '''
    Snapshot of the coupled simulation after a step.

    Parameters:
    -----------
    time : float
        Simulation time
    step : int
        Number of completed steps
    dt : float
        Last step size
    fluidKineticEnergy : float
        Kinetic energy of the fluid particles
    stringKineticEnergy : float
        Kinetic energy of the string nodes
    maxFluidSpeed : float
        Largest fluid particle speed
    maxStringSpeed : float
        Largest string node speed
    maxDensityError : float
        Largest relative density error |rho - rho_0| / rho_0
    forcedParticles : int
        Particles that received a coupling force this step
    '''

    time: float
    step: int
    dt: float
    fluidKineticEnergy: float
    stringKineticEnergy: float
    maxFluidSpeed: float
    maxStringSpeed: float
    maxDensityError: float
    forcedParticles: int = 0

    @property
    def totalKineticEnergy(self) -> float:
        '''Fluid plus string kinetic energy.'''
        return self.fluidKineticEnergy + self.stringKineticEnergy
