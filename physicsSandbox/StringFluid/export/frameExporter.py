# -- Sandbox Frame Exporter -- #

'''
Exports coupled sandbox frames as JSON for playback.

Collects fluid and string snapshots during a run and writes them to
a single JSON file, along with the energy history and run metadata.
'''

from __future__ import annotations

import json
import os
from datetime import datetime

import numpy as np

from physicsSandbox.StringFluid.sandbox import SandboxConfig
from physicsSandbox.StringFluid.sph.protocols import SimulationState
from physicsSandbox.StringFluid.sph.particles import ParticleSystem


class FrameExporter:
    '''
    Collects and exports sandbox frame data as JSON.

    Usage:
        exporter = FrameExporter()
        # During simulation loop:
        exporter.addFrame(state, particles, stringPositions)
        # After simulation:
        exporter.export(config, outputDir='output')

    Output JSON format:
    {
        "meta": { "type": "stringFluid", "nFrames": 40, "created": "...", ... },
        "config": { "boundsSize": [8, 6], ... },
        "frames": [
            {
                "time": 0.0,
                "positions": [[x0, y0], ...],
                "velocityMagnitudes": [v0, ...],
                "densities": [rho0, ...],
                "string": [[x0, y0], ...],
                "forcedParticles": 0
            },
            ...
        ],
        "energy": {
            "times": [...],
            "fluidKinetic": [...],
            "stringKinetic": [...],
            "total": [...]
        }
    }
    '''

    def __init__(self) -> None:
        self._frames: list[dict] = []
        self._energyHistory: dict[str, list[float]] = {
            'times': [],
            'fluidKinetic': [],
            'stringKinetic': [],
            'total': [],
        }

    @property
    def nFrames(self) -> int:
        '''Number of collected frames.'''
        return len(self._frames)

    def addFrame(
        self,
        state: SimulationState,
        particles: ParticleSystem,
        stringPositions: np.ndarray,
    ) -> None:
        '''
        Record a simulation frame.

        Solid boundary particles are static and are not stored.

        Parameters:
        -----------
        state : SimulationState
            Diagnostics after the step
        particles : ParticleSystem
            Fluid particles
        stringPositions : np.ndarray
            String nodes including anchors, shape (M+2, 2)
        '''
        velMagnitudes = np.linalg.norm(particles.velocities, axis=1)

        frame = {
            'time': round(state.time, 6),
            'positions': np.round(particles.positions, 6).tolist(),
            'velocityMagnitudes': np.round(velMagnitudes, 6).tolist(),
            'densities': np.round(particles.densities, 4).tolist(),
            'string': np.round(stringPositions, 6).tolist(),
            'forcedParticles': int(state.forcedParticles),
        }
        self._frames.append(frame)

        self._energyHistory['times'].append(round(state.time, 6))
        self._energyHistory['fluidKinetic'].append(round(state.fluidKineticEnergy, 6))
        self._energyHistory['stringKinetic'].append(round(state.stringKineticEnergy, 6))
        self._energyHistory['total'].append(round(state.totalKineticEnergy, 6))

    def export(
        self,
        config: SandboxConfig,
        outputDir: str = 'physicsSandbox/StringFluid/output',
        scenarioName: str = 'stringInTank',
    ) -> str:
        '''
        Write all collected frames to a JSON file.

        Parameters:
        -----------
        config : SandboxConfig
            Run configuration for metadata
        outputDir : str
            Output directory path
        scenarioName : str
            Scenario name for the filename

        Returns:
        --------
        str : Path to the exported JSON file
        '''
        os.makedirs(outputDir, exist_ok=True)

        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        filename = f'stringFluid_{scenarioName}_{timestamp}.json'
        filepath = os.path.join(outputDir, filename)

        with open(filepath, 'w') as f:
            json.dump(self.buildOutput(config), f, indent=None, separators=(',', ':'))

        return filepath

    def buildOutput(self, config: SandboxConfig) -> dict:
        '''Assemble the exported document (meta, config, frames, energy).'''
        fluidCfg = config.fluid
        stringCfg = config.string

        return {
            'meta': {
                'type': 'stringFluid',
                'dimensions': 2,
                'nFrames': len(self._frames),
                'nFluidParticles': len(self._frames[0]['positions']) if self._frames else 0,
                'nStringNodes': stringCfg.segmentCount + 2,
                'created': datetime.now().isoformat(),
            },
            'config': {
                'boundsSize': fluidCfg.boundsSize.tolist(),
                'smoothingRadius': fluidCfg.smoothingRadius,
                'targetDensity': fluidCfg.targetDensity,
                'particleRadius': fluidCfg.particleRadius,
                'obstacles': [
                    {'center': box.center.tolist(), 'size': box.size.tolist()}
                    for box in config.obstacles
                ],
                'tension': stringCfg.tension,
                'linearDensity': stringCfg.linearDensity,
                'dt': config.dt,
                'endTime': config.endTime,
            },
            'frames': self._frames,
            'energy': self._energyHistory,
        }
