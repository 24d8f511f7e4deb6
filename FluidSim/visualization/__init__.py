# -- Run Diagnostics Visualization -- #

'''
Plotly figures for inspecting exported runs offline.

FluidSim [10/19/2026]
'''

from FluidSim.visualization.runDashboard import createRunDashboard, plotParticleFrame
