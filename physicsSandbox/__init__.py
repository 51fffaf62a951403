# -- Physics Sandbox Package -- #

'''
Real-time 2D physics sandbox: an SPH fluid, a stiff vibrating string,
and the coupling that lets the string stir the fluid.
'''

__version__ = '0.1.0'
