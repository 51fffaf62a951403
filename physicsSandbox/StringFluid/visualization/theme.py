# -- Visualization Theme -- #

'''
Shared dark-mode styling for the sandbox diagnostic plots.
'''

# Plotly template
TEMPLATE = 'plotly_dark'

BLUE = '#42A5F5'
RED = '#EF5350'
GREEN = '#66BB6A'
ORANGE = '#FFA726'

WHITE = '#E0E0E0'
REFERENCE_LINE = '#888888'
