# -- Stiff Vibrating String Solver -- #

'''
Finite-difference solver for a stiff, damped string between two anchors.

The string is discretized into M interior nodes plus two anchors.
Interior nodes follow the stiff string equation

    mu * u_tt = T * u_xx - E * I * u_xxxx - mu * c * u_t + mu * g

with the spatial derivatives replaced by central differences over the
segment length L:

    u_xx   ~ (u[i-1] - 2 u[i] + u[i+1]) / L^2
    u_xxxx ~ (u[i-2] - 4 u[i-1] + 6 u[i] - 4 u[i+1] + u[i+2]) / L^4

and I = pi * r^4 / 4 for a circular cross-section. The bending term
is only applied to nodes with two neighbors on each side.

After the explicit update, inextensible distance constraints are
relaxed with Gauss-Seidel passes and velocities are rebuilt from the
net position change, so constraint corrections feed back into
velocity instead of accumulating energy.

Algorithm per step:
    1. Blend a dragged node toward the pointer target
    2. Apply sustained forces
    3. Split dt into stable substeps; for each substep:
        a. Accelerations (tension + stiffness + gravity + damping)
        b. Kick velocities, drift positions (dragged node excluded)
        c. Pin anchors, relax distance constraints
        d. v = (x_new - x_start) / dt for free nodes

References:
-----------
Bilbao (2009) -- Numerical Sound Synthesis, ch. 7 (stiff string)
Jakobsen (2001) -- Advanced Character Physics (constraint relaxation)
'''

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from physicsSandbox.StringFluid import constants as const
from physicsSandbox.StringFluid.vibratingString.interaction import (
    InteractionState,
    PointerRay,
    ForceSchedule,
)


# Segments shorter than this are skipped during constraint relaxation
MIN_SEGMENT_LENGTH: float = 1e-9


######################################################################
# -- String Configuration -- #
######################################################################

@dataclass
class StringConfig:
    '''
    Configuration for the vibrating string.

    Parameters:
    -----------
    leftAnchor : np.ndarray | None
        Left anchor position (required)
    rightAnchor : np.ndarray | None
        Right anchor position (required)
    stringLength : float | None
        Length used for the finite-difference spacing
        (None = initial anchor distance)
    tension : float
        String tension T
    linearDensity : float
        Mass per unit length mu
    youngsModulus : float
        Young's modulus E
    stringRadius : float
        Cross-section radius r
    damping : float
        Linear velocity damping c
    segmentCount : int
        Number of interior nodes M
    iterations : int
        Constraint relaxation passes per substep
    gravity : float
        Downward acceleration on interior nodes
    initialSag : float
        Initial downward bow amplitude of the interior nodes
    enableInteraction : bool
        Whether pointer input can pick and drag nodes
    interactionRadius : float
        Maximum ray distance for picking a node
    dragBlend : float
        Fraction of the distance to the pointer a dragged node covers per step
    cflNumber : float
        Safety factor of the substep size
    maxSubsteps : int
        Upper bound on substeps per step
    '''

    leftAnchor: np.ndarray | None = None
    rightAnchor: np.ndarray | None = None
    stringLength: float | None = None
    tension: float = const.tension
    linearDensity: float = const.linearDensity
    youngsModulus: float = const.youngsModulus
    stringRadius: float = const.stringRadius
    damping: float = const.stringDamping
    segmentCount: int = const.segmentCount
    iterations: int = const.constraintIterations
    gravity: float = const.stringGravity
    initialSag: float = const.initialSag
    enableInteraction: bool = True
    interactionRadius: float = const.interactionRadius
    dragBlend: float = const.dragBlend
    cflNumber: float = const.cflNumber
    maxSubsteps: int = const.maxSubsteps

    @property
    def momentOfInertia(self) -> float:
        '''Area moment of inertia of a circular cross-section, I = pi r^4 / 4.'''
        return math.pi * self.stringRadius ** 4 / 4.0

    def validate(self) -> None:
        '''
        Check the configuration and raise on values the solver cannot run with.

        Raises:
        -------
        ValueError : If an anchor is missing or a parameter is out of range
        '''
        if self.leftAnchor is None or self.rightAnchor is None:
            raise ValueError('String anchors not assigned: both leftAnchor and rightAnchor are required')
        if self.segmentCount < 1:
            raise ValueError(f'segmentCount must be at least 1, got {self.segmentCount}')
        if self.iterations < 1:
            raise ValueError(f'iterations must be at least 1, got {self.iterations}')
        if self.linearDensity <= 0.0:
            raise ValueError(f'linearDensity must be positive, got {self.linearDensity}')
        if self.tension < 0.0 or self.youngsModulus < 0.0 or self.damping < 0.0:
            raise ValueError('tension, youngsModulus and damping cannot be negative')
        if self.maxSubsteps < 1:
            raise ValueError(f'maxSubsteps must be at least 1, got {self.maxSubsteps}')
        if not 0.0 <= self.dragBlend <= 1.0:
            raise ValueError(f'dragBlend must lie in [0, 1], got {self.dragBlend}')

        span = np.linalg.norm(
            np.asarray(self.rightAnchor, dtype=float) - np.asarray(self.leftAnchor, dtype=float)
        )
        restLength = span if self.stringLength is None else self.stringLength
        if restLength <= 0.0:
            raise ValueError('String length must be positive (anchors coincide?)')


######################################################################
# -- String Solver -- #
######################################################################

class StringSolver:
    '''
    Stiff string with pinned anchors, constraint relaxation and dragging.

    Node 0 and node M+1 are anchors; nodes 1..M are free unless one of
    them is being dragged.

    Parameters:
    -----------
    config : StringConfig
        String configuration

    Raises:
    -------
    ValueError : If the configuration is invalid
    '''

    def __init__(self, config: StringConfig) -> None:
        config.validate()
        self._config = config

        self._leftAnchor = np.asarray(config.leftAnchor, dtype=float).reshape(2).copy()
        self._rightAnchor = np.asarray(config.rightAnchor, dtype=float).reshape(2).copy()

        nNodes = config.segmentCount + 2
        span = float(np.linalg.norm(self._rightAnchor - self._leftAnchor))
        restLength = span if config.stringLength is None else config.stringLength
        self._segmentLength = restLength / (config.segmentCount + 1)

        # Nodes evenly spaced between the anchors, interior bowed by initialSag
        t = np.arange(nNodes) / (nNodes - 1)
        positions = self._leftAnchor + t[:, np.newaxis] * (self._rightAnchor - self._leftAnchor)
        positions[1:-1, 1] -= config.initialSag * np.sin(np.pi * t[1:-1])

        self._positions = positions
        self._prevPositions = positions.copy()
        self._velocities = np.zeros_like(positions)

        # Constraint edges k joins nodes k and k+1; same-parity edges share no node
        edges = np.arange(nNodes - 1)
        self._edgeSweeps = (edges[0::2], edges[1::2])

        self._state = InteractionState.IDLE
        self._draggedIndex = -1
        self._pointerRay: PointerRay | None = None
        self._forces = ForceSchedule()

        self._time: float = 0.0
        self._step: int = 0

    ######################################################################
    # -- Main Time Step -- #
    ######################################################################

    def step(self, dt: float, pointerRay: PointerRay | None = None) -> None:
        '''
        Advance the string by one host frame.

        Parameters:
        -----------
        dt : float
            Frame time step (must be positive)
        pointerRay : PointerRay | None
            Current pointer ray, used while dragging
        '''
        if dt <= 0.0:
            raise ValueError(f'Time step must be positive, got {dt}')

        if pointerRay is not None:
            self._pointerRay = pointerRay

        self._prevPositions[:] = self._positions

        self._applyDrag()
        self._forces.advance(self._velocities, dt)
        self._zeroPinnedVelocities()

        nSubsteps = self.substepCount(dt)
        subDt = dt / nSubsteps
        for _ in range(nSubsteps):
            self._substep(subDt)

        self._time += dt
        self._step += 1

    def _substep(self, dt: float) -> None:
        '''One explicit update followed by constraint relaxation.'''
        positions = self._positions
        velocities = self._velocities
        free = self._freeMask()

        stepStart = positions.copy()

        accelerations = self._computeAccelerations()
        velocities[free] += accelerations[free] * dt
        positions[free] += velocities[free] * dt

        self._applyConstraints()

        velocities[free] = (positions[free] - stepStart[free]) / dt

    def substepCount(self, dt: float) -> int:
        '''
        Number of substeps that keeps the explicit update stable.

        The stiffest mode of the discrete operator has
            omega_max^2 = 4 (T/mu) / L^2 + 16 (E I / mu) / L^4
        and Symplectic Euler is stable for omega * dt < 2, so substeps
        are sized cflNumber * 2 / omega_max (at most maxSubsteps).
        '''
        cfg = self._config
        L = self._segmentLength
        omegaSq = (
            4.0 * (cfg.tension / cfg.linearDensity) / L ** 2
            + 16.0 * (cfg.youngsModulus * cfg.momentOfInertia / cfg.linearDensity) / L ** 4
        )
        if omegaSq <= 0.0:
            return 1
        stableDt = cfg.cflNumber * 2.0 / math.sqrt(omegaSq)
        return int(min(cfg.maxSubsteps, max(1, math.ceil(dt / stableDt))))

    ######################################################################
    # -- Accelerations -- #
    ######################################################################

    def _computeAccelerations(self) -> np.ndarray:
        '''
        Accelerations of all nodes (anchors get zero).

        Returns:
        --------
        np.ndarray : Accelerations, shape (M+2, 2)
        '''
        cfg = self._config
        P = self._positions
        L = self._segmentLength
        accelerations = np.zeros_like(P)

        # Tension: second difference on every interior node
        d2x = P[:-2] - 2.0 * P[1:-1] + P[2:]
        accelerations[1:-1] += (cfg.tension / cfg.linearDensity) * d2x / (L * L)

        # Stiffness: fourth difference on nodes with two neighbors each side
        if len(P) >= 5:
            d4x = P[:-4] - 4.0 * P[1:-3] + 6.0 * P[2:-2] - 4.0 * P[3:-1] + P[4:]
            bending = cfg.youngsModulus * cfg.momentOfInertia / cfg.linearDensity
            accelerations[2:-2] -= bending * d4x / L ** 4

        accelerations[1:-1, 1] -= cfg.gravity
        accelerations[1:-1] -= cfg.damping * self._velocities[1:-1]

        return accelerations

    ######################################################################
    # -- Constraints -- #
    ######################################################################

    def _applyConstraints(self) -> None:
        '''
        Pin anchors and relax adjacent-node distances toward the rest length.

        Each pass sweeps even edges, then odd edges. Within a sweep no
        two edges share a node, so the vectorized update equals a
        sequential Gauss-Seidel sweep. Each correction is split evenly
        between the two endpoints; a pinned or dragged endpoint keeps
        its position and its half of the correction is dropped.
        '''
        P = self._positions
        P[0] = self._leftAnchor
        P[-1] = self._rightAnchor

        idealDistance = np.linalg.norm(self._rightAnchor - self._leftAnchor) / (self._config.segmentCount + 1)
        movable = self._freeMask()

        for _ in range(self._config.iterations):
            for edges in self._edgeSweeps:
                nodeA = edges
                nodeB = edges + 1

                delta = P[nodeB] - P[nodeA]
                dist = np.linalg.norm(delta, axis=1)
                valid = dist > MIN_SEGMENT_LENGTH
                safeDist = np.where(valid, dist, 1.0)

                scale = np.where(valid, (1.0 - idealDistance / safeDist) * 0.5, 0.0)
                correction = delta * scale[:, np.newaxis]

                moveA = movable[nodeA]
                moveB = movable[nodeB]
                P[nodeA[moveA]] += correction[moveA]
                P[nodeB[moveB]] -= correction[moveB]

    def _freeMask(self) -> np.ndarray:
        '''Nodes integrated and moved by constraints: interior and not dragged.'''
        free = np.ones(len(self._positions), dtype=bool)
        free[0] = False
        free[-1] = False
        if self.isDragging:
            free[self._draggedIndex] = False
        return free

    def _zeroPinnedVelocities(self) -> None:
        self._velocities[0] = 0.0
        self._velocities[-1] = 0.0
        if self.isDragging:
            self._velocities[self._draggedIndex] = 0.0

    ######################################################################
    # -- Pointer Interaction -- #
    ######################################################################

    def pointerDown(self, ray: PointerRay) -> bool:
        '''
        Try to pick the interior node closest to the pointer ray.

        The node with the smallest perpendicular distance to the ray
        wins, provided it is closer than interactionRadius.

        Parameters:
        -----------
        ray : PointerRay
            Pointer ray in world space

        Returns:
        --------
        bool : True if a node was picked (state is now DRAGGING)
        '''
        cfg = self._config
        if not cfg.enableInteraction:
            return False

        distances = ray.perpendicularDistance(self._positions[1:-1])
        closest = int(np.argmin(distances))
        if distances[closest] >= cfg.interactionRadius:
            return False

        self._state = InteractionState.DRAGGING
        self._draggedIndex = closest + 1
        self._pointerRay = ray
        return True

    def pointerMove(self, ray: PointerRay) -> None:
        '''Update the pointer ray used as the drag target.'''
        self._pointerRay = ray

    def pointerUp(self) -> None:
        '''Release any dragged node.'''
        self._state = InteractionState.IDLE
        self._draggedIndex = -1
        self._pointerRay = None

    def _applyDrag(self) -> None:
        '''Blend the dragged node toward the pointer's z = 0 hit and hold it still.'''
        if not self.isDragging or self._pointerRay is None:
            return
        target = self._pointerRay.planeIntersection()
        if target is None:
            return

        index = self._draggedIndex
        self._positions[index] += (target - self._positions[index]) * self._config.dragBlend
        self._velocities[index] = 0.0

    ######################################################################
    # -- Excitation -- #
    ######################################################################

    def pluckString(self, normalizedPosition: float, amplitude: float) -> None:
        '''
        Displace the interior node nearest a normalized position upward.

        Parameters:
        -----------
        normalizedPosition : float
            Position along the string, 0 (left) to 1 (right)
        amplitude : float
            Upward displacement
        '''
        nInterior = self._config.segmentCount
        index = int(round(normalizedPosition * nInterior)) + 1
        index = min(max(index, 1), nInterior)
        self._positions[index, 1] += amplitude

    def applyForce(self, nodeIndex: int, force: np.ndarray, duration: float) -> None:
        '''
        Add a sustained acceleration to one interior node for a time window.

        Anchors and out-of-range indices are ignored.

        Parameters:
        -----------
        nodeIndex : int
            Node index (1..M)
        force : np.ndarray
            Acceleration vector (2,)
        duration : float
            Length of the window
        '''
        if 0 < nodeIndex < len(self._positions) - 1 and duration > 0.0:
            self._forces.add(nodeIndex, force, duration)

    def setAnchors(self, leftAnchor: np.ndarray, rightAnchor: np.ndarray) -> None:
        '''Move the anchors; nodes are pinned to them on the next step.'''
        self._leftAnchor = np.asarray(leftAnchor, dtype=float).reshape(2).copy()
        self._rightAnchor = np.asarray(rightAnchor, dtype=float).reshape(2).copy()

    ######################################################################
    # -- State Access -- #
    ######################################################################

    def getStringPositions(self) -> np.ndarray:
        '''
        Live node positions, shape (M+2, 2), anchors included.

        The returned view is read-only but changes as the string steps.
        '''
        view = self._positions.view()
        view.flags.writeable = False
        return view

    def getStringVelocities(self) -> np.ndarray:
        '''Live node velocities, shape (M+2, 2), read-only view.'''
        view = self._velocities.view()
        view.flags.writeable = False
        return view

    def getPreviousPositions(self) -> np.ndarray:
        '''Node positions at the start of the last step (copy).'''
        return self._prevPositions.copy()

    def kineticEnergy(self) -> float:
        '''
        Kinetic energy of the interior nodes.

        KE = (1/2) * (mu * L) * sum_i |v_i|^2
        '''
        nodeMass = self._config.linearDensity * self._segmentLength
        interior = self._velocities[1:-1]
        return float(0.5 * nodeMass * np.sum(interior * interior))

    def maxSpeed(self) -> float:
        '''Largest interior node speed.'''
        return float(np.max(np.linalg.norm(self._velocities[1:-1], axis=1)))

    @property
    def isDragging(self) -> bool:
        '''True while a node is being dragged.'''
        return self._state is InteractionState.DRAGGING

    @property
    def interactionState(self) -> InteractionState:
        '''Current pointer interaction state.'''
        return self._state

    @property
    def draggedIndex(self) -> int:
        '''Index of the dragged node, or -1.'''
        return self._draggedIndex

    @property
    def segmentLength(self) -> float:
        '''Finite-difference node spacing L.'''
        return self._segmentLength

    @property
    def nodeCount(self) -> int:
        '''Number of nodes including anchors.'''
        return len(self._positions)

    @property
    def anchors(self) -> tuple[np.ndarray, np.ndarray]:
        '''Current (left, right) anchor positions.'''
        return (self._leftAnchor.copy(), self._rightAnchor.copy())

    @property
    def config(self) -> StringConfig:
        '''String configuration.'''
        return self._config

    @property
    def time(self) -> float:
        '''Accumulated simulation time.'''
        return self._time
