# -- FluidSim Package -- #

'''
Interactive particle fluid simulation core.

A simplified SPH-like engine with a uniform-grid spatial hash,
fixed-capacity particle storage, and a per-frame tick pipeline
suitable for driving a real-time renderer.

FluidSim [10/19/2026]
'''

__version__ = '0.1.0'

from FluidSim.sph.fluidSolver import FluidSolver
from FluidSim.sph.protocols import BoundaryBox, SimulationParameters
from FluidSim.sph.interaction import InteractionState
from FluidSim.export.frameExporter import FrameExporter
