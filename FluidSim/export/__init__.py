# -- Export Package -- #

'''
Frame data export for offline viewers.

FluidSim [10/19/2026]
'''

from FluidSim.export.frameExporter import FrameExporter
