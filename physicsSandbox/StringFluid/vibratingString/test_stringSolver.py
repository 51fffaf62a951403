# -- String Solver Tests -- #

'''
Equilibrium, constraint convergence, dissipation and pointer
interaction checks for the stiff vibrating string.
'''

import numpy as np
import pytest

from physicsSandbox.StringFluid.vibratingString.stringSolver import StringConfig, StringSolver
from physicsSandbox.StringFluid.vibratingString.interaction import (
    InteractionState,
    PointerRay,
    ForceSchedule,
)


def makeString(**overrides):
    settings = dict(
        leftAnchor=np.array([0.0, 0.0]),
        rightAnchor=np.array([10.0, 0.0]),
        segmentCount=9,
        tension=1.0,
        linearDensity=0.01,
        youngsModulus=0.0,
        damping=1.0,
    )
    settings.update(overrides)
    return StringSolver(StringConfig(**settings))


#--------------------------------------------------------------------#
# -- Equilibrium and Constraints -- #
#--------------------------------------------------------------------#

def testStraightStringStaysInEquilibrium():
    solver = makeString(segmentCount=3, youngsModulus=2.0e9, tension=100.0)
    initial = solver.getStringPositions().copy()
    assert initial[:, 0].tolist() == [0.0, 2.5, 5.0, 7.5, 10.0]

    for _ in range(50):
        solver.step(1.0 / 60.0)

    assert solver.getStringPositions() == pytest.approx(initial, abs=1e-12)
    assert solver.kineticEnergy() == pytest.approx(0.0, abs=1e-20)


def testConstraintsConvergeToIdealSpacing():
    solver = makeString(damping=2.0)
    rng = np.random.default_rng(7)
    solver._positions[1:-1] += rng.uniform(-0.05, 0.05, size=(9, 2))

    for _ in range(2000):
        solver.step(0.01)

    positions = solver.getStringPositions()
    segments = np.linalg.norm(np.diff(positions, axis=0), axis=1)
    ideal = 10.0 / 10
    assert np.all(np.abs(segments - ideal) / ideal < 0.01)
    assert positions[0].tolist() == [0.0, 0.0]
    assert positions[-1].tolist() == [10.0, 0.0]


def testAnchorsArePinnedWhileVibrating():
    solver = makeString()
    solver.pluckString(0.3, 0.5)
    for _ in range(100):
        solver.step(0.01)
        positions = solver.getStringPositions()
        assert positions[0].tolist() == [0.0, 0.0]
        assert positions[-1].tolist() == [10.0, 0.0]


def testDampingDissipatesEnergy():
    solver = makeString(damping=1.0, gravity=0.0)
    solver.pluckString(0.5, 0.5)

    energies = []
    for _ in range(600):
        solver.step(0.01)
        energies.append(solver.kineticEnergy())

    energies = np.array(energies)
    assert np.all(np.isfinite(energies))
    assert np.mean(energies[-100:]) < np.mean(energies[:100])


def testSubstepCountIsBounded():
    solver = makeString(tension=100.0, youngsModulus=2.0e9, segmentCount=32, maxSubsteps=64)
    count = solver.substepCount(1.0 / 60.0)
    assert 1 < count <= 64
    assert makeString().substepCount(0.01) == 1


def testSetAnchorsMovesEndpoints():
    solver = makeString()
    solver.setAnchors(np.array([0.0, 0.0]), np.array([12.0, 1.0]))
    solver.step(0.01)
    assert solver.getStringPositions()[-1].tolist() == [12.0, 1.0]


#--------------------------------------------------------------------#
# -- Excitation -- #
#--------------------------------------------------------------------#

def testPluckDisplacesNearestInteriorNode():
    solver = makeString()
    solver.pluckString(0.5, 0.3)
    positions = solver.getStringPositions()
    assert positions[5, 1] == pytest.approx(0.3)
    assert np.count_nonzero(positions[:, 1]) == 1


def testPluckIndexIsClampedToInterior():
    solver = makeString()
    solver.pluckString(0.0, 0.2)
    solver.pluckString(1.0, -0.2)
    positions = solver.getStringPositions()
    assert positions[0, 1] == 0.0
    assert positions[-1, 1] == 0.0
    assert positions[1, 1] == pytest.approx(0.2)
    assert positions[9, 1] == pytest.approx(-0.2)


def testSustainedForceMovesNodeThenExpires():
    solver = makeString()
    solver.applyForce(3, np.array([0.0, 10.0]), duration=0.05)
    solver.step(0.01)
    assert solver.getStringPositions()[3, 1] > 0.0

    for _ in range(10):
        solver.step(0.01)
    assert len(solver._forces) == 0


def testForceOnAnchorIsIgnored():
    solver = makeString()
    solver.applyForce(0, np.array([0.0, 10.0]), duration=1.0)
    solver.applyForce(10, np.array([0.0, 10.0]), duration=1.0)
    solver.applyForce(4, np.array([0.0, 10.0]), duration=0.0)
    for _ in range(5):
        solver.step(0.01)
    assert np.all(solver.getStringPositions()[:, 1] == 0.0)


def testForceScheduleExpiresEntries():
    schedule = ForceSchedule()
    velocities = np.zeros((3, 2))
    schedule.add(1, np.array([2.0, 0.0]), 0.03)

    schedule.advance(velocities, 0.02)
    assert velocities[1].tolist() == pytest.approx([0.04, 0.0])
    assert len(schedule) == 1

    schedule.advance(velocities, 0.02)
    assert len(schedule) == 0


#--------------------------------------------------------------------#
# -- Pointer Interaction -- #
#--------------------------------------------------------------------#

def testPointerDownPicksClosestNode():
    solver = makeString()
    assert solver.interactionState is InteractionState.IDLE

    picked = solver.pointerDown(PointerRay.towardPoint(np.array([5.1, 0.1])))
    assert picked
    assert solver.isDragging
    assert solver.draggedIndex == 5


def testPointerDownMissesFarNodes():
    solver = makeString()
    assert not solver.pointerDown(PointerRay.towardPoint(np.array([5.0, 3.0])))
    assert not solver.isDragging
    assert solver.draggedIndex == -1


def testDisabledInteractionNeverPicks():
    solver = makeString(enableInteraction=False)
    assert not solver.pointerDown(PointerRay.towardPoint(np.array([5.0, 0.0])))


def testDragBlendsTowardPointer():
    solver = makeString(dragBlend=0.5)
    solver.pointerDown(PointerRay.towardPoint(np.array([5.0, 0.0])))
    solver.step(0.01, PointerRay.towardPoint(np.array([5.0, 2.0])))

    positions = solver.getStringPositions()
    assert positions[5].tolist() == pytest.approx([5.0, 1.0])
    assert solver.getStringVelocities()[5].tolist() == [0.0, 0.0]
    # Neighbors are pulled up by the constraints
    assert positions[4, 1] > 0.0
    assert positions[6, 1] > 0.0

    solver.pointerUp()
    assert solver.interactionState is InteractionState.IDLE
    assert solver.draggedIndex == -1


def testPointerRayGeometry():
    ray = PointerRay(origin=np.array([0.0, 0.0, -5.0]), direction=np.array([0.0, 0.0, 2.0]))
    assert np.linalg.norm(ray.direction) == pytest.approx(1.0)
    assert ray.planeIntersection().tolist() == pytest.approx([0.0, 0.0])
    assert ray.perpendicularDistance(np.array([[3.0, 4.0]]))[0] == pytest.approx(5.0)

    parallel = PointerRay(origin=np.array([0.0, 0.0, -5.0]), direction=np.array([1.0, 0.0, 0.0]))
    assert parallel.planeIntersection() is None

    with pytest.raises(ValueError):
        PointerRay(origin=np.zeros(3), direction=np.zeros(3))


#--------------------------------------------------------------------#
# -- State Access and Errors -- #
#--------------------------------------------------------------------#

def testStateViewsAreReadOnly():
    solver = makeString()
    assert solver.getStringPositions().shape == (11, 2)
    with pytest.raises(ValueError):
        solver.getStringPositions()[1, 1] = 1.0
    with pytest.raises(ValueError):
        solver.getStringVelocities()[1, 1] = 1.0


def testSegmentLengthUsesRestLength():
    assert makeString().segmentLength == pytest.approx(1.0)
    assert makeString(stringLength=20.0).segmentLength == pytest.approx(2.0)


def testInvalidConfigurationRaises():
    with pytest.raises(ValueError):
        StringSolver(StringConfig())
    with pytest.raises(ValueError):
        makeString(segmentCount=0)
    with pytest.raises(ValueError):
        makeString(linearDensity=0.0)
    with pytest.raises(ValueError):
        makeString(iterations=0)
    with pytest.raises(ValueError):
        makeString(rightAnchor=np.array([0.0, 0.0]))


def testNonPositiveStepRaises():
    with pytest.raises(ValueError):
        makeString().step(-0.01)
