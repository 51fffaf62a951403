# -- Coupled Sandbox Tests -- #

'''
Step ordering of the coupled simulation, configuration loading, the
scenario builder, frame export and the command-line runner.
'''

import json
import os

import numpy as np
import pytest

from physicsSandbox.StringFluid.sandbox import SandboxConfig, CoupledSimulation
from physicsSandbox.StringFluid.scenarios.stringInTank import createStringInTank
from physicsSandbox.StringFluid.export.frameExporter import FrameExporter
from physicsSandbox.StringFluid.vibratingString.interaction import PointerRay
from physicsSandbox.StringFluid.runner import StringFluidRunner, main


#--------------------------------------------------------------------#
# -- Step Ordering -- #
#--------------------------------------------------------------------#

class CallLog:
    def __init__(self):
        self.calls = []


class LoggedString:
    def __init__(self, log):
        self._log = log

    def step(self, dt, pointerRay=None):
        self._log.calls.append(('string', dt, pointerRay))

    def pointerDown(self, ray):
        self._log.calls.append(('pointerDown', ray))
        return True

    def pointerUp(self):
        self._log.calls.append(('pointerUp',))

    def kineticEnergy(self):
        return 0.0

    def maxSpeed(self):
        return 0.0


class LoggedCoupling:
    def __init__(self, log):
        self._log = log

    def apply(self, string, fluid):
        self._log.calls.append(('coupling',))
        return 3


class LoggedFluid:
    def __init__(self, log):
        self._log = log
        self.particles = createStringInTank(SandboxConfig.small()).fluid.particles
        self.config = SandboxConfig.small().fluid

    def step(self, dt):
        self._log.calls.append(('fluid', dt))

    def kineticEnergy(self):
        return 0.0


def testStepRunsStringThenCouplingThenFluid():
    log = CallLog()
    simulation = CoupledSimulation(LoggedFluid(log), LoggedString(log), LoggedCoupling(log))

    state = simulation.step(0.02)

    assert [call[0] for call in log.calls] == ['string', 'coupling', 'fluid']
    assert state.step == 1
    assert state.time == pytest.approx(0.02)
    assert state.forcedParticles == 3


def testPointerRayIsForwardedToString():
    log = CallLog()
    simulation = CoupledSimulation(LoggedFluid(log), LoggedString(log), LoggedCoupling(log))
    ray = PointerRay.towardPoint(np.array([1.0, 0.0]))

    assert simulation.pointerDown(ray)
    simulation.step(0.01)
    simulation.pointerUp()
    simulation.step(0.01)

    stringSteps = [call for call in log.calls if call[0] == 'string']
    assert stringSteps[0][2] is ray
    assert stringSteps[1][2] is None
    assert ('pointerUp',) in log.calls


def testNonPositiveStepRaises():
    simulation = createStringInTank(SandboxConfig.small())
    with pytest.raises(ValueError):
        simulation.step(0.0)


#--------------------------------------------------------------------#
# -- Scenario -- #
#--------------------------------------------------------------------#

def testPluckedStringStirsTheFluid():
    config = SandboxConfig.small()
    config.pluckAmplitude = 0.1
    simulation = createStringInTank(config)
    assert simulation.fluid.getParticleCount() == 100

    states = [simulation.step(config.dt) for _ in range(20)]

    assert max(state.forcedParticles for state in states) > 0
    assert states[-1].step == 20
    assert states[-1].time == pytest.approx(20 * config.dt)
    assert np.all(np.isfinite(simulation.fluid.particles.positions))
    assert np.all(np.isfinite(simulation.string.getStringPositions()))

    limits = config.fluid.halfBounds - config.fluid.particleRadius
    assert np.all(np.abs(simulation.fluid.particles.positions) <= limits + 1e-12)


def testUnpluckedStringLeavesFluidUnforced():
    config = SandboxConfig.small()
    config.pluckAmplitude = 0.0
    simulation = createStringInTank(config)

    for _ in range(5):
        state = simulation.step(config.dt)
        assert state.forcedParticles == 0
        assert state.stringKineticEnergy == pytest.approx(0.0, abs=1e-12)


def testStandardPresetHasObstacleAndFullRing():
    config = SandboxConfig.standard()
    simulation = createStringInTank(config)
    assert len(simulation.fluid.obstacles) == 1
    assert simulation.fluid.boundaryField.count == 2 * 21 + 2 * 16
    assert simulation.fluid.getParticleCount() == 400


#--------------------------------------------------------------------#
# -- Configuration Loading -- #
#--------------------------------------------------------------------#

def testFromJsonReadsEverySection(tmp_path):
    data = {
        'fluid': {'targetDensity': 3.5, 'boundsSize': [10.0, 8.0]},
        'string': {'segmentCount': 12, 'leftAnchor': [-4.0, 1.0], 'rightAnchor': [4.0, 1.0]},
        'coupling': {'forceMultiplier': 5.0},
        'obstacles': [{'center': [0.0, -2.0], 'size': [1.0, 0.5]}],
        'simulation': {'particleCount': 50, 'endTime': 1.5, 'pluckAmplitude': 0.0},
    }
    path = tmp_path / 'sandbox.json'
    path.write_text(json.dumps(data))

    config = SandboxConfig.fromJson(str(path))

    assert config.fluid.targetDensity == 3.5
    assert config.fluid.boundsSize.tolist() == [10.0, 8.0]
    assert config.fluid.smoothingRadius == SandboxConfig().fluid.smoothingRadius
    assert config.string.segmentCount == 12
    assert config.string.leftAnchor.tolist() == [-4.0, 1.0]
    assert config.coupling.forceMultiplier == 5.0
    assert config.obstacles[0].size.tolist() == [1.0, 0.5]
    assert config.particleCount == 50
    assert config.endTime == 1.5


def testStringAnchorsFollowFluidWorldWidth():
    config = SandboxConfig.fromDict({'fluid': {'boundsSize': [12.0, 6.0]}})

    assert config.string.leftAnchor.tolist() == [-5.5, 0.0]
    assert config.string.rightAnchor.tolist() == [5.5, 0.0]
    assert SandboxConfig.fromDict({}).string.rightAnchor.tolist() == [3.5, 0.0]


def testUnknownKeysAreRejected():
    with pytest.raises(ValueError):
        SandboxConfig.fromDict({'fluid': {'notAField': 1.0}})
    with pytest.raises(ValueError):
        SandboxConfig.fromDict({'simulation': {'speed': 2.0}})


def testMissingFileRaises(tmp_path):
    with pytest.raises(FileNotFoundError):
        SandboxConfig.fromJson(str(tmp_path / 'missing.json'))


#--------------------------------------------------------------------#
# -- Export and Runner -- #
#--------------------------------------------------------------------#

def testExporterWritesFramesAndEnergy(tmp_path):
    config = SandboxConfig.small()
    simulation = createStringInTank(config)
    exporter = FrameExporter()

    for _ in range(3):
        state = simulation.step(config.dt)
        exporter.addFrame(state, simulation.fluid.particles, simulation.string.getStringPositions())

    path = exporter.export(config, outputDir=str(tmp_path))
    with open(path, 'r') as f:
        data = json.load(f)

    assert data['meta']['nFrames'] == 3
    assert data['meta']['nFluidParticles'] == 100
    assert len(data['frames'][0]['string']) == config.string.segmentCount + 2
    assert len(data['energy']['times']) == 3


def testRunnerRunsAndExports(tmp_path, capsys):
    config = SandboxConfig.small()
    config.endTime = 0.1

    result = StringFluidRunner().run(config, exportDir=str(tmp_path), showProgress=False)

    assert result['finalState'].step == 6
    assert result['exportPath'] is not None
    assert 'SIMULATION SUMMARY' in capsys.readouterr().out


def testCommandLineOverrides(tmp_path, capsys):
    main(['--end-time', '0.05', '--pluck', '0.1', '--no-export', '--output-dir', str(tmp_path)])

    out = capsys.readouterr().out
    pluckLine = next(line for line in out.splitlines() if 'Pluck Amplitude' in line)
    assert pluckLine.split()[-1] == '0.100'
    assert list(tmp_path.iterdir()) == []


def testRunnerWritesDiagnosticPlots(tmp_path, capsys):
    config = SandboxConfig.small()
    config.endTime = 0.05

    result = StringFluidRunner().run(
        config, doExport=False, exportDir=str(tmp_path), showProgress=False, doPlot=True,
    )

    assert result['exportPath'] is None
    assert len(result['plotPaths']) == 2
    for path in result['plotPaths']:
        assert path.endswith('.html')
        assert os.path.exists(path)
