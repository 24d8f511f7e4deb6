# -- Scenarios Package -- #

'''
Seeded starting layouts for the fluid.

FluidSim [10/19/2026]
'''

from FluidSim.scenarios.particleBlock import BlockLayoutConfig, createParticleBlock
