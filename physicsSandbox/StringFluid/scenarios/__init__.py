# -- Sandbox Scenarios Package -- #

'''
Pre-configured sandbox scenarios.

Each scenario turns a SandboxConfig into a ready-to-run
CoupledSimulation with its initial particle layout and string.
'''

from physicsSandbox.StringFluid.scenarios.stringInTank import createStringInTank
