# -- Container Boundary Enforcement -- #

'''
Clamp-and-bounce boundary for a rectangular container.

Instead of wall particles, every active particle that has left the
box after integration is moved back onto the violated face and the
velocity component normal to that face is reversed and scaled by a
damping factor (an inelastic bounce):

    x_d  <- clamp(x_d, min_d, max_d)
    v_d  <- -damping * v_d          (only on the violated axis)

This runs unconditionally every tick, so positions are always inside
[boundaryMin, boundaryMax] when control returns to the caller.

FluidSim [10/19/2026]
'''

from __future__ import annotations

import numpy as np

from FluidSim.sph.errors import ConfigurationError
from FluidSim.sph.particles import ParticleStore
from FluidSim.sph.protocols import BoundaryBox


class BoundaryHandler:
    '''
    Keeps particles inside a BoundaryBox.

    Parameters:
    -----------
    box : BoundaryBox
        Container geometry
    inset : float
        Distance the effective walls are pulled inward, e.g. the
        visual particle radius so spheres do not poke through the
        container (default 0)
    '''

    def __init__(self, box: BoundaryBox, inset: float = 0.0) -> None:
        self._box = box
        self._inset = 0.0
        self.setInset(inset)

    def setInset(self, inset: float) -> None:
        '''Change the wall inset; it must leave a non-empty interior.'''
        if inset < 0.0 or np.any(2.0 * inset >= self._box.size):
            raise ConfigurationError(f'Inset {inset} leaves no room inside the container')
        self._inset = float(inset)
        self._lower = self._box.boundaryMin + self._inset
        self._upper = self._box.boundaryMax - self._inset

    def enforceBoundary(
        self,
        particles: ParticleStore,
        indices: np.ndarray,
        damping: float,
    ) -> int:
        '''
        Clamp positions and reflect velocities of the given particles.

        Parameters:
        -----------
        particles : ParticleStore
            Store whose arrays are modified in place
        indices : np.ndarray
            Active slot indices
        damping : float
            Fraction of normal velocity kept after a bounce, in [0, 1)

        Returns:
        --------
        int : Number of axis collisions resolved
        '''
        if len(indices) == 0:
            return 0

        positions = particles.positions[indices]
        velocities = particles.velocities[indices]

        below = positions < self._lower
        above = positions > self._upper
        hit = below | above

        positions = np.clip(positions, self._lower, self._upper)
        velocities = np.where(hit, -damping * velocities, velocities)

        particles.positions[indices] = positions
        particles.velocities[indices] = velocities
        return int(np.count_nonzero(hit))

    @property
    def box(self) -> BoundaryBox:
        return self._box

    @property
    def lower(self) -> np.ndarray:
        '''Effective lower wall after the inset.'''
        return self._lower

    @property
    def upper(self) -> np.ndarray:
        '''Effective upper wall after the inset.'''
        return self._upper
