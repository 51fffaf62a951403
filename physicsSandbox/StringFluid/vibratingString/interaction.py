# -- String Interaction Inputs -- #

'''
Host-facing inputs for the string: pointer rays, drag state, and
time-windowed forces.

The host converts its pointer into a world-space ray (PointerRay) and
hands it to the string solver; the solver never queries a camera or
scene itself. Sustained forces requested through applyForce are kept
in a ForceSchedule that the solver advances once per step.
'''

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np


#--------------------------------------------------------------------#
# -- Interaction State -- #
#--------------------------------------------------------------------#

class InteractionState(Enum):
    '''Pointer interaction state of the string.'''

    IDLE = 'idle'
    DRAGGING = 'dragging'


#--------------------------------------------------------------------#
# -- Pointer Ray -- #
#--------------------------------------------------------------------#

@dataclass
class PointerRay:
    '''
    World-space ray cast from the host's pointer.

    The string lives in the z = 0 plane; node positions are lifted to
    3D with z = 0 for distance tests.

    Parameters:
    -----------
    origin : np.ndarray
        Ray origin (x, y, z)
    direction : np.ndarray
        Ray direction (x, y, z), normalized on construction
    '''

    origin: np.ndarray
    direction: np.ndarray

    def __post_init__(self) -> None:
        self.origin = np.asarray(self.origin, dtype=float).reshape(3)
        direction = np.asarray(self.direction, dtype=float).reshape(3)
        length = np.linalg.norm(direction)
        if length == 0.0:
            raise ValueError('Pointer ray direction cannot be zero')
        self.direction = direction / length

    @classmethod
    def towardPoint(cls, point: np.ndarray, cameraDistance: float = 10.0) -> PointerRay:
        '''
        Ray from a camera on the -z axis straight through a plane point.

        Parameters:
        -----------
        point : np.ndarray
            Target (x, y) in the z = 0 plane
        cameraDistance : float
            Distance of the ray origin behind the plane

        Returns:
        --------
        PointerRay : Ray along +z through the point
        '''
        x, y = np.asarray(point, dtype=float)
        return cls(
            origin=np.array([x, y, -cameraDistance]),
            direction=np.array([0.0, 0.0, 1.0]),
        )

    def perpendicularDistance(self, points: np.ndarray) -> np.ndarray:
        '''
        Distance from each plane point to the ray's line.

        |direction x (point - origin)| with points lifted to z = 0.

        Parameters:
        -----------
        points : np.ndarray
            Points in the z = 0 plane, shape (M, 2)

        Returns:
        --------
        np.ndarray : Distances, shape (M,)
        '''
        points = np.asarray(points, dtype=float).reshape(-1, 2)
        lifted = np.column_stack([points, np.zeros(len(points))])
        return np.linalg.norm(np.cross(self.direction, lifted - self.origin), axis=1)

    def planeIntersection(self) -> np.ndarray | None:
        '''
        Point where the ray meets the z = 0 plane.

        Returns:
        --------
        np.ndarray | None : (x, y) of the hit, or None for a ray parallel
            to the plane
        '''
        if abs(self.direction[2]) < 1e-12:
            return None
        t = -self.origin[2] / self.direction[2]
        hit = self.origin + self.direction * t
        return hit[:2].copy()


#--------------------------------------------------------------------#
# -- Sustained Forces -- #
#--------------------------------------------------------------------#

@dataclass
class SustainedForce:
    '''A constant acceleration on one node for a limited time.'''

    nodeIndex: int
    force: np.ndarray
    remaining: float


class ForceSchedule:
    '''
    Time-windowed forces applied to string nodes.

    Each entry adds force * dt to its node's velocity on every advance
    until its remaining time runs out.
    '''

    def __init__(self) -> None:
        self._entries: list[SustainedForce] = []

    def add(self, nodeIndex: int, force: np.ndarray, duration: float) -> None:
        '''Schedule force on nodeIndex for duration seconds.'''
        self._entries.append(SustainedForce(
            nodeIndex=nodeIndex,
            force=np.asarray(force, dtype=float).reshape(2).copy(),
            remaining=float(duration),
        ))

    def advance(self, velocities: np.ndarray, dt: float) -> None:
        '''
        Apply every active force for dt and drop the expired ones.

        Parameters:
        -----------
        velocities : np.ndarray
            Node velocities, updated in place
        dt : float
            Elapsed time
        '''
        for entry in self._entries:
            velocities[entry.nodeIndex] += entry.force * dt
            entry.remaining -= dt
        self._entries = [entry for entry in self._entries if entry.remaining > 0.0]

    def clear(self) -> None:
        '''Cancel all scheduled forces.'''
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
