# -- Particle Block Scenario -- #

'''
Seeded starting layout: a block of particles dropped into the container.

Particles are placed on a regular grid (square in 2D, cubic in 3D)
centered horizontally and starting in the upper part of the
container, with a small random offset per particle so the block does
not stay perfectly stacked. A block too large for the container is
lowered and its spacing tightened until it fits. Each particle also
gets a small random initial velocity.

The same seed always produces the same layout, which is what makes
reset() and repeated runs reproducible.

FluidSim [10/19/2026]
'''

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from FluidSim.sph.errors import ConfigurationError
from FluidSim.sph.protocols import BoundaryBox


######################################################################
# -- Layout Configuration -- #
######################################################################

@dataclass
class BlockLayoutConfig:
    '''
    Settings for the seeded particle block.

    Parameters:
    -----------
    spacingRatio : float
        Grid spacing as a fraction of the smoothing radius
    heightFraction : float
        Height of the block's lowest row, as a fraction of the
        container height measured from the floor
    jitter : float
        Width of the uniform random position offset
    velocityJitter : float
        Width of the uniform random initial velocity
    '''

    spacingRatio: float = 0.5
    heightFraction: float = 0.65
    jitter: float = 0.05
    velocityJitter: float = 0.5

    @classmethod
    def calm(cls) -> BlockLayoutConfig:
        '''Tight block at rest, low in the container.'''
        return cls(spacingRatio=0.5, heightFraction=0.1, jitter=0.01, velocityJitter=0.0)

    @classmethod
    def splash(cls) -> BlockLayoutConfig:
        '''Loose block high up with noisy velocities.'''
        return cls(spacingRatio=0.6, heightFraction=0.7, jitter=0.08, velocityJitter=1.5)


######################################################################
# -- Scenario Creation -- #
######################################################################

def createParticleBlock(
    count: int,
    boundary: BoundaryBox,
    smoothingRadius: float,
    rng: np.random.Generator,
    config: BlockLayoutConfig | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    '''
    Generate positions and velocities for a seeded particle block.

    Grid order is x-major, then y (then z). When the block would not
    fit, the spacing shrinks and the block is lowered so every grid
    point and its jitter band stay strictly inside the container. The
    final clip only guards against float error.

    Parameters:
    -----------
    count : int
        Number of particles
    boundary : BoundaryBox
        Container the block must fit in
    smoothingRadius : float
        Smoothing radius; sets the grid spacing
    rng : np.random.Generator
        Random source for the jitter
    config : BlockLayoutConfig | None
        Layout settings

    Returns:
    --------
    tuple[np.ndarray, np.ndarray] :
        (positions, velocities), each shape (count, dim)
    '''
    config = config or BlockLayoutConfig()
    dimensions = boundary.dimensions
    if count < 0:
        raise ConfigurationError(f'Particle count must be >= 0, got {count}')
    if count == 0:
        return (np.zeros((0, dimensions)), np.zeros((0, dimensions)))

    spacing = smoothingRadius * config.spacingRatio
    if spacing <= 0.0:
        raise ConfigurationError(f'Block spacing must be positive, got {spacing}')

    gridSize = math.ceil(count ** (1.0 / dimensions))
    # Guard against float error in the root (e.g. 64 ** (1/3) = 3.9999...)
    while (gridSize - 1) ** dimensions >= count:
        gridSize -= 1

    # Each grid point owns one spacing-wide cell plus the jitter band
    usable = float(np.min(boundary.size)) - config.jitter
    if usable <= 0.0:
        raise ConfigurationError(
            f'Layout jitter {config.jitter} leaves no room in the container'
        )
    spacing = min(spacing, usable / gridSize)
    margin = 0.5 * (spacing + config.jitter)
    extent = spacing * (gridSize - 1)

    start = boundary.center - 0.5 * extent
    lowestRow = boundary.boundaryMin[1] + config.heightFraction * boundary.size[1]
    # Lower the block until its top row clears the ceiling
    start[1] = min(
        max(lowestRow, boundary.boundaryMin[1] + margin),
        boundary.boundaryMax[1] - margin - extent,
    )

    # Regular grid, x-major ordering
    axes = [np.arange(gridSize)] * dimensions
    cells = np.stack(np.meshgrid(*axes, indexing='ij'), axis=-1).reshape(-1, dimensions)[:count]

    positions = start + cells * spacing
    positions += (rng.random((count, dimensions)) - 0.5) * config.jitter
    velocities = (rng.random((count, dimensions)) - 0.5) * config.velocityJitter

    np.clip(positions, boundary.boundaryMin, boundary.boundaryMax, out=positions)
    return (positions, velocities)
