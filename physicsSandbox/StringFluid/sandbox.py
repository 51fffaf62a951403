# -- Coupled String/Fluid Sandbox -- #

'''
Sandbox configuration and the coupled string/fluid simulation.

SandboxConfig groups the fluid, string and coupling configurations
with the obstacle list and run settings, and can be built from a
preset or a JSON file. CoupledSimulation owns one solver of each kind
and advances them in a fixed order every step:

    1. StringSolver.step(dt)          -- string moves
    2. CouplingField.apply(...)       -- string motion -> fluid forces
    3. FluidSolver.step(dt)           -- fluid integrates those forces

The fluid therefore always sees forces computed from the string state
of the same step, and the external force buffer is written exactly
once before it is consumed.
'''

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields

import numpy as np

from physicsSandbox.StringFluid import constants as const
from physicsSandbox.StringFluid.sph.protocols import FluidConfig, AxisAlignedBox, SimulationState
from physicsSandbox.StringFluid.sph.fluidSolver import FluidSolver
from physicsSandbox.StringFluid.vibratingString.stringSolver import StringConfig, StringSolver
from physicsSandbox.StringFluid.vibratingString.interaction import PointerRay
from physicsSandbox.StringFluid.coupling.couplingField import CouplingConfig, CouplingField


#--------------------------------------------------------------------#
# -- Sandbox Configuration -- #
#--------------------------------------------------------------------#

def _defaultStringConfig(boundsWidth: float = const.boundsWidth) -> StringConfig:
    '''String anchored half a unit inside the side walls, at mid-height.'''
    halfSpan = boundsWidth / 2.0 - 0.5
    return StringConfig(
        leftAnchor=np.array([-halfSpan, 0.0]),
        rightAnchor=np.array([halfSpan, 0.0]),
    )


@dataclass
class SandboxConfig:
    '''
    Complete configuration of a coupled sandbox run.

    Parameters:
    -----------
    fluid : FluidConfig
        Fluid configuration
    string : StringConfig
        String configuration (anchors span the world by default)
    coupling : CouplingConfig
        String-to-fluid coupling
    obstacles : list[AxisAlignedBox]
        Box obstacles inside the world
    particleCount : int
        Number of fluid particles in the initial block
    initialSpacing : float
        Spacing of the initial particle block
    blockCenter : np.ndarray
        Center of the initial particle block
    dt : float
        Fixed frame time step
    endTime : float
        Simulated duration of a headless run
    outputInterval : float
        Time between exported frames
    pluckPosition : float
        Normalized position of the initial pluck (0..1)
    pluckAmplitude : float
        Initial pluck displacement (0 = no pluck)
    '''

    fluid: FluidConfig = field(default_factory=FluidConfig)
    string: StringConfig = field(default_factory=_defaultStringConfig)
    coupling: CouplingConfig = field(default_factory=CouplingConfig)
    obstacles: list[AxisAlignedBox] = field(default_factory=list)
    particleCount: int = 100
    initialSpacing: float = const.initialSpacing
    blockCenter: np.ndarray = field(default_factory=lambda: np.zeros(2))
    dt: float = const.frameTimeStep
    endTime: float = 2.0
    outputInterval: float = 0.05
    pluckPosition: float = 0.5
    pluckAmplitude: float = 0.5

    def __post_init__(self) -> None:
        self.blockCenter = np.asarray(self.blockCenter, dtype=float)

    def validate(self) -> None:
        '''Raise ValueError for any invalid sub-configuration or run setting.'''
        self.fluid.validate()
        self.string.validate()
        self.coupling.validate()
        if self.particleCount < 1:
            raise ValueError(f'particleCount must be at least 1, got {self.particleCount}')
        if self.initialSpacing <= 0.0:
            raise ValueError(f'initialSpacing must be positive, got {self.initialSpacing}')
        if self.dt <= 0.0 or self.endTime <= 0.0 or self.outputInterval <= 0.0:
            raise ValueError('dt, endTime and outputInterval must be positive')

    @classmethod
    def small(cls) -> SandboxConfig:
        '''
        Small sandbox for quick runs.

        100 particles, 2 s of simulated time.
        '''
        return cls(particleCount=100, initialSpacing=0.3, endTime=2.0)

    @classmethod
    def standard(cls) -> SandboxConfig:
        '''
        Standard sandbox with an obstacle below the string.

        400 particles, 5 s of simulated time.
        '''
        return cls(
            particleCount=400,
            initialSpacing=0.2,
            endTime=5.0,
            obstacles=[AxisAlignedBox(center=np.array([0.0, -2.4]), size=np.array([1.5, 0.5]))],
            fluid=FluidConfig(solidCount=None),
        )

    @classmethod
    def fromJson(cls, path: str) -> SandboxConfig:
        '''
        Load a sandbox configuration from a JSON file.

        Recognized top-level sections are "fluid", "string", "coupling"
        (keys are the dataclass field names), "obstacles" (a list of
        {"center": [x, y], "size": [w, h]}) and "simulation"
        (particleCount, initialSpacing, blockCenter, dt, endTime,
        outputInterval, pluckPosition, pluckAmplitude). Missing keys
        keep their defaults.

        Parameters:
        -----------
        path : str
            Path to the JSON file

        Returns:
        --------
        SandboxConfig : Parsed configuration

        Raises:
        -------
        ValueError : If a section contains an unknown key
        '''
        with open(path, 'r') as f:
            data = json.load(f)
        return cls.fromDict(data)

    @classmethod
    def fromDict(cls, data: dict) -> SandboxConfig:
        '''
        Build a configuration from already-parsed JSON data (see fromJson).

        String anchors not given in the "string" section follow the
        resolved fluid world width.
        '''
        default = cls()

        fluid = _updateDataclass(default.fluid, data.get('fluid', {}), 'fluid')
        string = _updateDataclass(_defaultStringConfig(float(fluid.boundsSize[0])), data.get('string', {}), 'string')
        coupling = _updateDataclass(default.coupling, data.get('coupling', {}), 'coupling')

        obstacles = [
            AxisAlignedBox(center=np.array(entry['center']), size=np.array(entry['size']))
            for entry in data.get('obstacles', [])
        ]

        simSection = data.get('simulation', {})
        simKeys = {
            'particleCount', 'initialSpacing', 'blockCenter', 'dt', 'endTime',
            'outputInterval', 'pluckPosition', 'pluckAmplitude',
        }
        unknown = set(simSection) - simKeys
        if unknown:
            raise ValueError(f'Unknown simulation keys: {sorted(unknown)}')

        return cls(
            fluid=fluid,
            string=string,
            coupling=coupling,
            obstacles=obstacles,
            **simSection,
        )


def _updateDataclass(instance, section: dict, sectionName: str):
    '''Return a copy of a config dataclass with the section's keys applied.'''
    names = {f.name for f in fields(instance)}
    unknown = set(section) - names
    if unknown:
        raise ValueError(f'Unknown {sectionName} keys: {sorted(unknown)}')

    values = {f.name: getattr(instance, f.name) for f in fields(instance)}
    for key, value in section.items():
        values[key] = np.array(value, dtype=float) if isinstance(value, list) else value
    return type(instance)(**values)


#--------------------------------------------------------------------#
# -- Coupled Simulation -- #
#--------------------------------------------------------------------#

class CoupledSimulation:
    '''
    String, coupling field and fluid advanced together.

    Parameters:
    -----------
    fluid : FluidSolver
        Fluid solver
    string : StringSolver
        String solver
    coupling : CouplingField
        Coupling from string to fluid
    '''

    def __init__(
        self,
        fluid: FluidSolver,
        string: StringSolver,
        coupling: CouplingField,
    ) -> None:
        self._fluid = fluid
        self._string = string
        self._coupling = coupling
        self._pointerRay: PointerRay | None = None

        self._time: float = 0.0
        self._step: int = 0
        self._lastDt: float = 0.0
        self._lastForced: int = 0

    def step(self, dt: float) -> SimulationState:
        '''
        Advance string, coupling and fluid by one frame.

        Parameters:
        -----------
        dt : float
            Frame time step

        Returns:
        --------
        SimulationState : Diagnostics after the step
        '''
        if dt <= 0.0:
            raise ValueError(f'Time step must be positive, got {dt}')

        self._string.step(dt, self._pointerRay)
        self._lastForced = self._coupling.apply(self._string, self._fluid)
        self._fluid.step(dt)

        self._time += dt
        self._step += 1
        self._lastDt = dt

        return self.currentState

    ######################################################################
    # -- Pointer Input -- #
    ######################################################################

    def pointerDown(self, ray: PointerRay) -> bool:
        '''Forward a pointer press to the string; True if a node was picked.'''
        self._pointerRay = ray
        return self._string.pointerDown(ray)

    def pointerMove(self, ray: PointerRay) -> None:
        '''Update the drag target used on the next step.'''
        self._pointerRay = ray

    def pointerUp(self) -> None:
        '''Release the dragged node.'''
        self._pointerRay = None
        self._string.pointerUp()

    ######################################################################
    # -- State Access -- #
    ######################################################################

    @property
    def currentState(self) -> SimulationState:
        '''Diagnostic snapshot of both solvers.'''
        particles = self._fluid.particles
        return SimulationState(
            time=self._time,
            step=self._step,
            dt=self._lastDt,
            fluidKineticEnergy=self._fluid.kineticEnergy(),
            stringKineticEnergy=self._string.kineticEnergy(),
            maxFluidSpeed=particles.maxSpeed(),
            maxStringSpeed=self._string.maxSpeed(),
            maxDensityError=particles.maxDensityError(self._fluid.config.targetDensity),
            forcedParticles=self._lastForced,
        )

    @property
    def fluid(self) -> FluidSolver:
        return self._fluid

    @property
    def string(self) -> StringSolver:
        return self._string

    @property
    def coupling(self) -> CouplingField:
        return self._coupling

    @property
    def time(self) -> float:
        return self._time
