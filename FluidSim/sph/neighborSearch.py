# -- Spatial Hash for Neighbor Search -- #

'''
Uniform-grid spatial hashing for near O(N) neighbor search.

Divides space into square (2D) or cubic (3D) cells of a fixed size,
normally equal to the smoothing radius. A radius query only inspects
the cell containing the query point and its immediate neighbors
(9 cells in 2D, 27 in 3D), then filters the candidates by exact
Euclidean distance.

The grid is rebuilt from scratch every tick. Bucket lists and the
internal point buffer are kept between rebuilds so that a steady
particle count causes no per-frame reallocation.

Limit: the 3x3 (3x3x3) block only covers queries with
radius <= cellSize. Larger radii are not expanded automatically and
will under-report neighbors.

References:
-----------
Teschner et al. (2003) -- Optimized Spatial Hashing for Collision
    Detection of Deformable Objects
Green (2010) -- Particle Simulation using CUDA

FluidSim [10/19/2026]
'''

from __future__ import annotations

import itertools
import logging
import math
from typing import Protocol

import numpy as np

from FluidSim.sph.errors import ConfigurationError

logger = logging.getLogger(__name__)


#--------------------------------------------------------------------#
# -- Neighbor Search Protocol -- #
#--------------------------------------------------------------------#

class NeighborSearch(Protocol):
    '''Protocol for radius-bounded neighbor search structures.'''

    def clear(self) -> None:
        '''Remove every inserted item.'''
        ...

    def insert(self, index: int, position: np.ndarray) -> None:
        '''Insert item `index` at `position`.'''
        ...

    def queryNeighbors(self, position: np.ndarray, radius: float) -> np.ndarray:
        '''Indices of inserted items within `radius` of `position`.'''
        ...


#--------------------------------------------------------------------#
# -- Spatial Hash Grid -- #
#--------------------------------------------------------------------#

class SpatialHash:
    '''
    Uniform grid mapping integer cell coordinates to particle indices.

    Parameters:
    -----------
    cellSize : float
        Grid cell edge length, must be > 0. Use the smoothing radius
        so every query stays inside the 3x3 (3x3x3) stencil.
    dimensions : int
        Number of spatial dimensions (2 or 3)
    '''

    def __init__(self, cellSize: float, dimensions: int = 2) -> None:
        if dimensions not in (2, 3):
            raise ConfigurationError(f'dimensions must be 2 or 3, got {dimensions}')

        self._dimensions = dimensions
        self._cellSize = 1.0
        self._invCellSize = 1.0
        self.configure(cellSize)

        self._buckets: dict[tuple[int, ...], list[int]] = {}
        self._occupied: list[tuple[int, ...]] = []
        self._points = np.zeros((0, dimensions))
        self._itemCount = 0
        self._warnedRadius = False

        # Full stencil including the home cell, in lexicographic order
        self._stencil = list(itertools.product((-1, 0, 1), repeat=dimensions))

    def configure(self, cellSize: float) -> None:
        '''
        Set the cell size.

        Existing contents are left in their old buckets, so callers
        should rebuild after changing the cell size.
        '''
        if not math.isfinite(cellSize) or cellSize <= 0.0:
            raise ConfigurationError(f'Cell size must be positive, got {cellSize}')
        self._cellSize = float(cellSize)
        self._invCellSize = 1.0 / self._cellSize
        self._warnedRadius = False

    def clear(self) -> None:
        '''Empty all buckets, keeping their storage for reuse.'''
        for key in self._occupied:
            self._buckets[key].clear()
        self._occupied.clear()
        self._itemCount = 0

    def insert(self, index: int, position: np.ndarray) -> None:
        '''
        Place item `index` into the bucket for `position`.

        Parameters:
        -----------
        index : int
            Non-negative particle index
        position : np.ndarray
            Position, shape (dim,)
        '''
        if index >= len(self._points):
            self._growPoints(index + 1)
        self._points[index] = position

        key = self._cellKey(position)
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = []
            self._buckets[key] = bucket
        if not bucket:
            self._occupied.append(key)
        bucket.append(index)
        self._itemCount += 1

    def build(self, positions: np.ndarray, indices: np.ndarray) -> None:
        '''
        Rebuild the grid from a subset of a position array.

        Parameters:
        -----------
        positions : np.ndarray
            Position array, shape (N, dim)
        indices : np.ndarray
            Indices into `positions` to insert, in insertion order
        '''
        self.clear()
        for index in indices:
            self.insert(int(index), positions[index])

    def queryNeighbors(self, position: np.ndarray, radius: float) -> np.ndarray:
        '''
        Indices of items whose distance to `position` is <= radius.

        Candidates come from the 3x3 (3x3x3) block of cells around
        `position`; each is then checked against the exact distance.

        Parameters:
        -----------
        position : np.ndarray
            Query point, shape (dim,)
        radius : float
            Search radius, expected <= cellSize

        Returns:
        --------
        np.ndarray : Matching indices (int64), stencil then insertion order
        '''
        indices, _ = self.queryWithDistance(position, radius)
        return indices

    def queryWithDistance(
        self, position: np.ndarray, radius: float
    ) -> tuple[np.ndarray, np.ndarray]:
        '''
        Radius query that also returns the distance to each match.

        Returns:
        --------
        tuple[np.ndarray, np.ndarray] :
            (indices, distances) of items within `radius`
        '''
        if radius > self._cellSize and not self._warnedRadius:
            logger.warning(
                'Query radius %.4g exceeds cell size %.4g; neighbors beyond '
                'one cell will be missed', radius, self._cellSize,
            )
            self._warnedRadius = True

        candidates = self._gatherCandidates(position)
        if not candidates:
            return (np.empty(0, dtype=np.int64), np.empty(0))

        candidateIdx = np.fromiter(candidates, dtype=np.int64, count=len(candidates))
        diff = self._points[candidateIdx] - position
        distSq = np.einsum('ij,ij->i', diff, diff)

        within = distSq <= radius * radius
        return (candidateIdx[within], np.sqrt(distSq[within]))

    @property
    def cellSize(self) -> float:
        '''Grid cell edge length.'''
        return self._cellSize

    @property
    def dimensions(self) -> int:
        '''Number of spatial dimensions.'''
        return self._dimensions

    @property
    def size(self) -> int:
        '''Number of items inserted since the last clear().'''
        return self._itemCount

    def _cellKey(self, position: np.ndarray) -> tuple[int, ...]:
        return tuple(math.floor(position[d] * self._invCellSize) for d in range(self._dimensions))

    def _gatherCandidates(self, position: np.ndarray) -> list[int]:
        home = self._cellKey(position)
        candidates: list[int] = []
        for offset in self._stencil:
            key = tuple(home[d] + offset[d] for d in range(self._dimensions))
            bucket = self._buckets.get(key)
            if bucket:
                candidates.extend(bucket)
        return candidates

    def _growPoints(self, minLength: int) -> None:
        # Amortized doubling; steady-state rebuilds never reach this
        newLength = max(minLength, 2 * len(self._points), 16)
        grown = np.zeros((newLength, self._dimensions))
        grown[:len(self._points)] = self._points
        self._points = grown
