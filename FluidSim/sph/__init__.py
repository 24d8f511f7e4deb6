# -- Fluid Core Package -- #

'''
Core simulation engine.

Provides the spatial hash, particle store, falloff kernels, boundary
handling, time integration, pointer interaction, and the solver.

FluidSim [10/19/2026]
'''

from FluidSim.sph.errors import ConfigurationError, FluidSimError, ParameterError, SimulationDisposedError
from FluidSim.sph.protocols import BoundaryBox, ParticleSnapshot, SimulationParameters, SimulationState
from FluidSim.sph.neighborSearch import SpatialHash
from FluidSim.sph.particles import ParticleStore, PoolStats
from FluidSim.sph.kernels import LinearFalloffKernel, QuadraticFalloffKernel, createKernel
from FluidSim.sph.interaction import InteractionAdapter, InteractionState
from FluidSim.sph.fluidSolver import FluidSolver
