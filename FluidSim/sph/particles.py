# -- Fixed-Capacity Particle Store -- #

'''
Arena of particle slots backed by contiguous NumPy arrays.

Every slot keeps its array position for the life of the store, so
renderer instance buffers can be indexed by slot number. Slots are
switched on and off with the `active` mask instead of being added
or removed, and nothing is reallocated after construction.

Vector quantities have shape (capacity, dimensions) and scalar
quantities have shape (capacity,). All particles have unit mass.

FluidSim [10/19/2026]
'''

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import numpy as np

from FluidSim.sph.errors import ConfigurationError, SimulationDisposedError


@dataclass(frozen=True)
class PoolStats:
    '''
    Slot occupancy of a ParticleStore.

    Parameters:
    -----------
    capacity : int
        Total number of slots
    active : int
        Slots currently simulated
    available : int
        Slots free for spawn()
    '''

    capacity: int
    active: int
    available: int


class ParticleStore:
    '''
    Fixed-capacity particle storage.

    Parameters:
    -----------
    capacity : int
        Number of slots, must be > 0
    dimensions : int
        Number of spatial dimensions (2 or 3)
    '''

    def __init__(self, capacity: int, dimensions: int = 2) -> None:
        if capacity <= 0:
            raise ConfigurationError(f'Capacity must be positive, got {capacity}')
        if dimensions not in (2, 3):
            raise ConfigurationError(f'dimensions must be 2 or 3, got {dimensions}')

        self._capacity = int(capacity)
        self._dimensions = dimensions
        self._disposed = False

        self.positions = np.zeros((capacity, dimensions))
        self.velocities = np.zeros((capacity, dimensions))
        self.accelerations = np.zeros((capacity, dimensions))
        self.densities = np.zeros(capacity)
        self.pressures = np.zeros(capacity)
        self.active = np.zeros(capacity, dtype=bool)

        # Seeded starting configuration restored by reset()
        self._seedPositions = np.zeros((capacity, dimensions))
        self._seedVelocities = np.zeros((capacity, dimensions))
        self._seedCount = 0

    ######################################################################
    # -- Slot Management -- #
    ######################################################################

    def spawn(
        self,
        position: np.ndarray,
        velocity: np.ndarray | None = None,
    ) -> int | None:
        '''
        Activate the lowest free slot.

        Parameters:
        -----------
        position : np.ndarray
            Initial position, shape (dim,)
        velocity : np.ndarray | None
            Initial velocity, zero if omitted

        Returns:
        --------
        int | None : Slot index, or None when every slot is in use
        '''
        self._checkAlive()
        position = np.asarray(position, dtype=float)
        if position.shape != (self._dimensions,) or not np.all(np.isfinite(position)):
            raise ConfigurationError(
                f'Spawn position must be {self._dimensions} finite components, got {position.tolist()}'
            )

        free = np.flatnonzero(~self.active)
        if len(free) == 0:
            return None

        index = int(free[0])
        self.positions[index] = position
        if velocity is None:
            self.velocities[index] = 0.0
        else:
            self.velocities[index] = velocity
        self.accelerations[index] = 0.0
        self.densities[index] = 0.0
        self.pressures[index] = 0.0
        self.active[index] = True
        return index

    def deactivate(self, index: int) -> None:
        '''
        Mark a slot inactive. The slot's data stays in place.

        Raises:
        -------
        IndexError : If `index` is outside [0, capacity)
        '''
        self._checkAlive()
        if not 0 <= index < self._capacity:
            raise IndexError(f'Particle index {index} out of range [0, {self._capacity})')
        self.active[index] = False

    def activeIndices(self) -> np.ndarray:
        '''Indices of active slots in ascending order.'''
        self._checkAlive()
        return np.flatnonzero(self.active)

    def forEachActive(self, fn: Callable[[int], None]) -> None:
        '''Call `fn(index)` for every active slot, in ascending index order.'''
        for index in self.activeIndices():
            fn(int(index))

    ######################################################################
    # -- Seeding and Reset -- #
    ######################################################################

    def seed(self, positions: np.ndarray, velocities: np.ndarray | None = None) -> None:
        '''
        Record a starting configuration and apply it.

        The first len(positions) slots hold the seeded particles;
        reset() restores exactly this state.

        Parameters:
        -----------
        positions : np.ndarray
            Seed positions, shape (M, dim) with M <= capacity
        velocities : np.ndarray | None
            Seed velocities, shape (M, dim); zero if omitted
        '''
        self._checkAlive()
        positions = np.asarray(positions, dtype=float).reshape(-1, self._dimensions)
        count = len(positions)
        if count > self._capacity:
            raise ConfigurationError(
                f'Seed has {count} particles but capacity is {self._capacity}'
            )

        self._seedPositions[:] = 0.0
        self._seedVelocities[:] = 0.0
        self._seedPositions[:count] = positions
        if velocities is not None:
            self._seedVelocities[:count] = np.asarray(velocities, dtype=float).reshape(-1, self._dimensions)
        self._seedCount = count
        self.reset()

    def reset(self) -> None:
        '''
        Restore every slot to the seeded configuration in place.

        Slots beyond the seeded subset are zeroed and left inactive.
        Calling reset() repeatedly yields the same state.
        '''
        self._checkAlive()
        np.copyto(self.positions, self._seedPositions)
        np.copyto(self.velocities, self._seedVelocities)
        self.accelerations.fill(0.0)
        self.densities.fill(0.0)
        self.pressures.fill(0.0)
        self.active.fill(False)
        self.active[:self._seedCount] = True

    ######################################################################
    # -- Diagnostics -- #
    ######################################################################

    def stats(self) -> PoolStats:
        '''Current slot occupancy.'''
        nActive = self.nActive
        return PoolStats(
            capacity=self._capacity,
            active=nActive,
            available=self._capacity - nActive,
        )

    def kineticEnergy(self) -> float:
        '''
        Total kinetic energy of active particles (unit mass).

        KE = (1/2) * sum_i |v_i|^2
        '''
        self._checkAlive()
        vels = self.velocities[self.active]
        return 0.5 * float(np.sum(vels * vels))

    def maxSpeed(self) -> float:
        '''Maximum velocity magnitude among active particles.'''
        self._checkAlive()
        vels = self.velocities[self.active]
        if len(vels) == 0:
            return 0.0
        return float(np.max(np.linalg.norm(vels, axis=1)))

    ######################################################################
    # -- Lifecycle -- #
    ######################################################################

    def dispose(self) -> None:
        '''Release the backing arrays. The store is unusable afterwards.'''
        self.positions = None
        self.velocities = None
        self.accelerations = None
        self.densities = None
        self.pressures = None
        self.active = None
        self._seedPositions = None
        self._seedVelocities = None
        self._disposed = True

    @property
    def capacity(self) -> int:
        '''Total number of slots.'''
        return self._capacity

    @property
    def dimensions(self) -> int:
        '''Number of spatial dimensions.'''
        return self._dimensions

    @property
    def nActive(self) -> int:
        '''Number of active slots.'''
        self._checkAlive()
        return int(np.count_nonzero(self.active))

    @property
    def seedCount(self) -> int:
        '''Number of slots in the seeded configuration.'''
        return self._seedCount

    @property
    def isDisposed(self) -> bool:
        return self._disposed

    def _checkAlive(self) -> None:
        if self._disposed:
            raise SimulationDisposedError('ParticleStore has been disposed')
