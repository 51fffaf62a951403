# -- SPH Boundary Field and Collisions -- #

'''
Solid boundary particles and collision enforcement for the sandbox fluid.

Two mechanisms keep the fluid inside the world:

1. BoundaryField -- a fixed ring of solid particles just outside the
   world rectangle. Each solid carries the fluid's target density and
   contributes to fluid density and pressure through its own influence
   radius, acting as a soft wall that pushes fluid away.

2. CollisionHandler -- hard clamping against the world rectangle and
   against axis-aligned box obstacles, with damped velocity reflection.

References:
-----------
Monaghan & Kos (1999) -- Solitary waves on a Cretan beach
Mueller et al. (2003) -- Particle-based fluid simulation for
    interactive applications
'''

from __future__ import annotations

import math
from typing import Iterable

import numpy as np

from physicsSandbox.StringFluid.sph.particles import ParticleSystem
from physicsSandbox.StringFluid.sph.protocols import AxisAlignedBox


######################################################################
# -- Boundary Field -- #
######################################################################

class BoundaryField:
    '''
    Fixed ring of solid particles around the world rectangle.

    Solids are laid along the top, bottom, left and right edges in that
    order, offset outward by the spacing radius and spaced twice the
    spacing radius apart. When `solidCount` is given the ring is
    truncated to that many particles, so a small count lines only part
    of the perimeter.

    Parameters:
    -----------
    boundsSize : np.ndarray
        Full width and height of the world rectangle
    spacingRadius : float
        Half the distance between neighboring solids
    targetDensity : float
        Density assigned to every solid
    solidCount : int | None
        Number of solids to keep (None keeps the whole ring)
    '''

    def __init__(
        self,
        boundsSize: np.ndarray,
        spacingRadius: float,
        targetDensity: float,
        solidCount: int | None = None,
    ) -> None:
        if spacingRadius <= 0.0:
            raise ValueError(f'Solid spacing radius must be positive, got {spacingRadius}')
        if solidCount is not None and solidCount < 0:
            raise ValueError(f'Solid count cannot be negative, got {solidCount}')

        self._boundsSize = np.asarray(boundsSize, dtype=float).copy()
        self._spacingRadius = spacingRadius

        ring = self._generateRing()
        if solidCount is not None:
            ring = ring[:solidCount]

        self._positions = ring
        self._densities = np.full(len(ring), float(targetDensity))

        self._positions.flags.writeable = False
        self._densities.flags.writeable = False

    def _generateRing(self) -> np.ndarray:
        '''
        Generate the complete perimeter ring.

        Returns:
        --------
        np.ndarray : Solid positions, shape (M, 2)
        '''
        r = self._spacingRadius
        spacing = 2.0 * r
        width, height = self._boundsSize
        halfW, halfH = width / 2.0, height / 2.0

        nAcross = int(math.floor(width / spacing + 1e-9)) + 1
        nUp = int(math.floor(height / spacing + 1e-9)) + 1

        xCoords = -halfW + spacing * np.arange(nAcross)
        yCoords = -halfH + spacing * np.arange(nUp)

        top = np.column_stack([xCoords, np.full(nAcross, halfH + r)])
        bottom = np.column_stack([xCoords, np.full(nAcross, -halfH - r)])
        left = np.column_stack([np.full(nUp, -halfW - r), yCoords])
        right = np.column_stack([np.full(nUp, halfW + r), yCoords])

        return np.vstack([top, bottom, left, right])

    @property
    def positions(self) -> np.ndarray:
        '''Solid positions, shape (M, 2), read-only.'''
        return self._positions

    @property
    def densities(self) -> np.ndarray:
        '''Solid densities, shape (M,), read-only.'''
        return self._densities

    @property
    def count(self) -> int:
        '''Number of solid particles.'''
        return len(self._positions)


######################################################################
# -- Collision Handling -- #
######################################################################

class CollisionHandler:
    '''
    Hard collision response against the world rectangle and box obstacles.

    Parameters:
    -----------
    halfBounds : np.ndarray
        Half-extents of the world rectangle (centered on the origin)
    particleRadius : float
        Collision radius of a fluid particle
    collisionDamping : float
        Fraction of the normal velocity kept after reflection
    '''

    def __init__(
        self,
        halfBounds: np.ndarray,
        particleRadius: float,
        collisionDamping: float,
    ) -> None:
        self._halfBounds = np.asarray(halfBounds, dtype=float).copy()
        self._particleRadius = particleRadius
        self._collisionDamping = collisionDamping

    def resolve(
        self,
        particles: ParticleSystem,
        obstacles: Iterable[AxisAlignedBox] = (),
    ) -> None:
        '''Resolve world bounds first, then every obstacle in order.'''
        self.enforceBounds(particles)
        for box in obstacles:
            self.enforceObstacle(particles, box)

    def enforceBounds(self, particles: ParticleSystem) -> None:
        '''
        Clamp particles to the world rectangle.

        On each axis independently, a particle beyond
        halfBounds - particleRadius is placed on the limit and its
        velocity component is reversed and scaled by collisionDamping.
        '''
        limits = self._halfBounds - self._particleRadius
        positions = particles.positions
        velocities = particles.velocities

        for axis in range(2):
            outside = np.abs(positions[:, axis]) > limits[axis]
            if not np.any(outside):
                continue
            positions[outside, axis] = limits[axis] * np.sign(positions[outside, axis])
            velocities[outside, axis] *= -self._collisionDamping

    def enforceObstacle(self, particles: ParticleSystem, box: AxisAlignedBox) -> None:
        '''
        Push particles out of an axis-aligned box.

        Penetration depths (including the particle radius) are measured
        to all four sides. Only particles with every depth >= 0 are
        touched: they are moved out through the side of least
        penetration, and their whole velocity is reversed and damped.
        Ties for the least penetration exit through the top.
        '''
        r = self._particleRadius
        boxMin = box.boxMin
        boxMax = box.boxMax
        positions = particles.positions
        velocities = particles.velocities

        x = positions[:, 0]
        y = positions[:, 1]

        depths = np.column_stack([
            x + r - boxMin[0],      # left
            -x + r + boxMax[0],     # right
            y + r - boxMin[1],      # bottom
            -y + r + boxMax[1],     # top
        ])

        inside = np.all(depths >= 0.0, axis=1)
        if not np.any(inside):
            return

        insideIdx = np.nonzero(inside)[0]
        insideDepths = depths[insideIdx]
        side = np.argmin(insideDepths, axis=1)
        tied = np.sum(insideDepths == insideDepths.min(axis=1, keepdims=True), axis=1) > 1
        side[tied] = 3

        exitCoordinate = np.array([
            boxMin[0] - r,
            boxMax[0] + r,
            boxMin[1] - r,
            boxMax[1] + r,
        ])
        exitAxis = np.array([0, 0, 1, 1])

        axes = exitAxis[side]
        positions[insideIdx, axes] = exitCoordinate[side]
        velocities[insideIdx] *= -self._collisionDamping
