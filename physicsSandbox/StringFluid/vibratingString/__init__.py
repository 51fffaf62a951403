# -- Vibrating String Package -- #

'''
Stiff vibrating string: finite-difference integration, distance
constraints, and pointer interaction.
'''

from physicsSandbox.StringFluid.vibratingString.interaction import InteractionState, PointerRay
from physicsSandbox.StringFluid.vibratingString.stringSolver import StringConfig, StringSolver
