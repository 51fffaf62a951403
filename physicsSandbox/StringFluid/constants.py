# -- Default Constants for the String/Fluid Sandbox -- #

'''
Default physical and numerical constants for the coupled sandbox.

Units are sandbox units (world units, seconds, unit particle mass)
rather than SI: the fluid is a visual SPH fluid tuned for stability
at frame-rate time steps, not a calibrated water model.

References:
-----------
Mueller et al. (2003) -- Particle-based fluid simulation for
    interactive applications
Bilbao (2009) -- Numerical Sound Synthesis (stiff string model)
'''

import math

#--------------------------------------------------------------------#
# -- Fluid Properties -- #
#--------------------------------------------------------------------#

# Mass carried by every fluid and solid particle
particleMass: float = 1.0

# Rest density the equation of state drives toward
targetDensity: float = 2.75

# Linear equation of state stiffness: p = (rho - rho_0) * k
pressureMultiplier: float = 0.5

# Scale applied to the summed velocity-difference viscosity force
viscosityStrength: float = 0.2

# Gravity magnitude acting on fluid particles (off by default)
fluidGravity: float = 0.0

#--------------------------------------------------------------------#
# -- SPH Numerical Parameters -- #
#--------------------------------------------------------------------#

# Kernel support radius for fluid-fluid interactions
smoothingRadius: float = 0.5

# Kernel support radius for fluid-solid interactions
solidInfluenceRadius: float = 0.15

# Collision radius of a fluid particle against walls and obstacles
particleRadius: float = 0.05

# Fraction of normal velocity kept (and reversed) on collision
collisionDamping: float = 0.2

# Initial spacing of the fluid particle block
initialSpacing: float = 0.3

# Hash multipliers for cell coordinates (unsigned 32-bit arithmetic)
hashPrimeX: int = 15823
hashPrimeY: int = 9737333
hashModulus: int = 2 ** 32

#--------------------------------------------------------------------#
# -- World and Boundary -- #
#--------------------------------------------------------------------#

# Full width and height of the world rectangle, centered on the origin
boundsWidth: float = 8.0
boundsHeight: float = 6.0

# Half the spacing between neighboring solid particles
solidSpacingRadius: float = 0.2

# Number of solid particles in the boundary ring
solidCount: int = 30

#--------------------------------------------------------------------#
# -- String Properties -- #
#--------------------------------------------------------------------#

# T - tension [force]
tension: float = 100.0

# mu - mass per unit length
linearDensity: float = 0.01

# E - Young's modulus for bending stiffness
youngsModulus: float = 2.0e9

# Radius of the circular cross-section (moment of inertia I = pi r^4 / 4)
stringRadius: float = 0.005

# Linear velocity damping coefficient
stringDamping: float = 0.01

# Number of free (interior) nodes
segmentCount: int = 32

# Distance-constraint relaxation passes per substep
constraintIterations: int = 10

# Gravity magnitude acting on string nodes
stringGravity: float = 0.0

# Initial downward bow of the interior nodes
initialSag: float = 0.0

#--------------------------------------------------------------------#
# -- String Interaction -- #
#--------------------------------------------------------------------#

# Maximum perpendicular ray distance for picking a node
interactionRadius: float = 0.5

# Fraction of the remaining distance a dragged node closes per step
dragBlend: float = 0.5

# Stability safety factor for the explicit string update
# dt_sub = cflNumber * 2 / omega_max
cflNumber: float = 0.25

# Upper bound on substeps per string step
maxSubsteps: int = 128

#--------------------------------------------------------------------#
# -- String/Fluid Coupling -- #
#--------------------------------------------------------------------#

# Radius around a string node inside which fluid is pushed
influenceRadius: float = 1.0

# Scale of the injected force
forceMultiplier: float = 2.0

# Nodes slower than this do not push fluid
velocityThreshold: float = 0.1

# Squared force magnitude below which no force is injected
forceThresholdSq: float = 0.001

#--------------------------------------------------------------------#
# -- Runner Defaults -- #
#--------------------------------------------------------------------#

# Host frame time step
frameTimeStep: float = 1.0 / 60.0

# Seed for the zero-distance direction fallback
randomSeed: int = 0

# Normalization helper shared by the density and viscosity kernels
kernelVolumeFactor: float = math.pi / 6.0
