# -- Visualization Theme -- #

'''
Shared dark-mode colors for every FluidSim Plotly figure.

FluidSim [10/19/2026]
'''

# Plotly template
TEMPLATE = 'plotly_dark'

BLUE = '#42A5F5'
RED = '#EF5350'
GREEN = '#66BB6A'
ORANGE = '#FFA726'

# Neutrals
WHITE = '#E0E0E0'
REFERENCE_LINE = '#888888'

# Particle speed colormap
SPEED_SCALE = 'Turbo'
