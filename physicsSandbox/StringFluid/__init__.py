# -- StringFluid Package -- #

'''
Coupled vibrating string and Smoothed Particle Hydrodynamics (SPH) fluid.

The string is integrated with finite differences plus distance
constraints, and moving string nodes push nearby fluid particles
through a kernel-weighted force field.
'''

__version__ = '0.1.0'

from physicsSandbox.StringFluid.sandbox import SandboxConfig, CoupledSimulation
from physicsSandbox.StringFluid.scenarios.stringInTank import createStringInTank
from physicsSandbox.StringFluid.runner import StringFluidRunner
from physicsSandbox.StringFluid.export.frameExporter import FrameExporter
