# -- Coupling Package -- #

'''
Force coupling from string motion into the fluid.
'''

from physicsSandbox.StringFluid.coupling.couplingField import CouplingConfig, CouplingField
