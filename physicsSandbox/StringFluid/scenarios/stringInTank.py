# -- String in a Tank Scenario -- #

'''
A plucked string stretched through a block of fluid.

The scenario creates:
1. A square-ish block of fluid particles at rest
2. The solid boundary ring and any box obstacles from the config
3. A string between the configured anchors, optionally plucked
4. The coupling field and the CoupledSimulation that drives all three
'''

from __future__ import annotations

from physicsSandbox.StringFluid.sandbox import SandboxConfig, CoupledSimulation
from physicsSandbox.StringFluid.sph.particles import ParticleSystem
from physicsSandbox.StringFluid.sph.fluidSolver import FluidSolver
from physicsSandbox.StringFluid.vibratingString.stringSolver import StringSolver
from physicsSandbox.StringFluid.coupling.couplingField import CouplingField


######################################################################
# -- Scenario Creation -- #
######################################################################

def createStringInTank(sandboxConfig: SandboxConfig) -> CoupledSimulation:
    '''
    Build a ready-to-run coupled simulation from configuration.

    Parameters:
    -----------
    sandboxConfig : SandboxConfig
        Scenario configuration

    Returns:
    --------
    CoupledSimulation : Simulation at t = 0

    Raises:
    -------
    ValueError : If any part of the configuration is invalid
    '''
    sandboxConfig.validate()

    particles = ParticleSystem.createBlock(
        nParticles=sandboxConfig.particleCount,
        spacing=sandboxConfig.initialSpacing,
        center=sandboxConfig.blockCenter,
    )

    fluid = FluidSolver(
        config=sandboxConfig.fluid,
        particles=particles,
        obstacles=sandboxConfig.obstacles,
    )

    string = StringSolver(sandboxConfig.string)
    if sandboxConfig.pluckAmplitude != 0.0:
        string.pluckString(sandboxConfig.pluckPosition, sandboxConfig.pluckAmplitude)

    coupling = CouplingField(sandboxConfig.coupling)

    return CoupledSimulation(fluid=fluid, string=string, coupling=coupling)
