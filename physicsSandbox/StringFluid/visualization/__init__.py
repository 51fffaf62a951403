# -- Visualization Subpackage -- #

'''
Plotly diagnostic plots for exported sandbox runs.
'''

from physicsSandbox.StringFluid.visualization.diagnosticPlots import plotEnergyHistory, plotFrame
