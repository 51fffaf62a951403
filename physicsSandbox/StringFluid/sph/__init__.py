# -- SPH Engine Package -- #

'''
Sandbox Smoothed Particle Hydrodynamics (SPH) engine.

Provides smoothing kernels, the particle system, the spatial hash
grid, solid boundary particles and collisions, time integration,
and the fluid solver.
'''

from physicsSandbox.StringFluid.sph.protocols import FluidConfig, AxisAlignedBox, SimulationState
from physicsSandbox.StringFluid.sph.kernels import DensityKernel, PressureSlopeKernel, ViscosityKernel
from physicsSandbox.StringFluid.sph.particles import ParticleSystem
from physicsSandbox.StringFluid.sph.neighborSearch import SpatialHashGrid
from physicsSandbox.StringFluid.sph.fluidSolver import FluidSolver
