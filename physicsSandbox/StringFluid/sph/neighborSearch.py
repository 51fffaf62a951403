# -- Spatial Hash Grid for Neighbor Search -- #

'''
Hashed uniform-grid neighbor search for the sandbox SPH fluid.

Particles are binned into square cells of size equal to the kernel
support radius. Instead of a per-cell container, every particle gets
a bucket key

    key = ((cellX * 15823 + cellY * 9737333) mod 2^32) mod N

where N is the particle count. The (particleIndex, key) pairs are
sorted by key, and a start-index table of length N records where
each bucket's run begins in the sorted sequence. A neighbor query
visits the 9 cells around the query point, jumps to each bucket's
run and scans forward while the key matches.

Because the key space is compressed to N buckets, distinct cells
can alias into the same bucket. Every candidate is distance-filtered,
so aliasing only costs scan time; a bucket reached by more than one
of the 9 offsets is scanned once per query so no particle is
reported twice.

The grid is rebuilt from scratch every step.

References:
-----------
Teschner et al. (2003) -- Optimized Spatial Hashing for Collision
    Detection of Deformable Objects
Green (2010) -- Particle Simulation using CUDA
'''

from __future__ import annotations

from typing import Callable, Protocol

import numpy as np

from physicsSandbox.StringFluid import constants as const


# 3x3 stencil around the home cell, in scan order
CELL_OFFSETS = np.array([
    (-1, 1), (0, 1), (1, 1),
    (-1, 0), (0, 0), (1, 0),
    (-1, -1), (0, -1), (1, -1),
], dtype=np.int64)

# Start-index table entry for a bucket with no particles
NO_ENTRY = np.iinfo(np.int64).max


#--------------------------------------------------------------------#
# -- Neighbor Search Protocol -- #
#--------------------------------------------------------------------#

class NeighborSearch(Protocol):
    '''Protocol for neighbor search structures.'''

    def rebuild(self, positions: np.ndarray, cellSize: float) -> None:
        '''Rebuild the structure from particle positions.'''
        ...

    def queryNeighbors(
        self, points: np.ndarray, radius: float
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        '''
        Find all (query point, particle) pairs within radius.

        Returns:
        --------
        tuple[np.ndarray, np.ndarray, np.ndarray] :
            (queryIndices, particleIndices, distances)
        '''
        ...


#--------------------------------------------------------------------#
# -- Spatial Hash Grid -- #
#--------------------------------------------------------------------#

class SpatialHashGrid:
    '''
    Sorted-key spatial hash grid in 2D.

    State after `rebuild`:
        sortedIndices  particle index at each sorted slot
        sortedKeys     bucket key at each sorted slot (ascending)
        startIndices   first slot of each bucket, or NO_ENTRY
        bucketCounts   run length of each bucket

    Queries must not use a radius larger than the cell size, otherwise
    neighbors outside the 3x3 stencil are missed.
    '''

    def __init__(self) -> None:
        self._cellSize: float = 0.0
        self._positions: np.ndarray | None = None
        self._sortedIndices = np.empty(0, dtype=np.int64)
        self._sortedKeys = np.empty(0, dtype=np.int64)
        self._startIndices = np.empty(0, dtype=np.int64)
        self._bucketCounts = np.empty(0, dtype=np.int64)

    ######################################################################
    # -- Build -- #
    ######################################################################

    def rebuild(self, positions: np.ndarray, cellSize: float) -> None:
        '''
        Rebuild the grid from particle positions.

        Parameters:
        -----------
        positions : np.ndarray
            Particle positions, shape (N, 2)
        cellSize : float
            Cell edge length (the kernel support radius)

        Raises:
        -------
        ValueError : If there are no particles or cellSize is not positive
        '''
        positions = np.asarray(positions, dtype=float).reshape(-1, 2)
        nParticles = len(positions)
        if nParticles == 0:
            raise ValueError('Cannot build a spatial hash grid with zero particles')
        if cellSize <= 0.0:
            raise ValueError(f'Cell size must be positive, got {cellSize}')

        self._cellSize = float(cellSize)
        self._positions = positions.copy()

        cells = self.positionToCellCoord(positions)
        keys = self._keysForCells(cells, nParticles)

        # Sort (index, key) pairs by key
        order = np.argsort(keys, kind='stable')
        self._sortedIndices = order.astype(np.int64)
        self._sortedKeys = keys[order]

        # First slot of every key run
        isRunStart = np.ones(nParticles, dtype=bool)
        isRunStart[1:] = self._sortedKeys[1:] != self._sortedKeys[:-1]
        self._startIndices = np.full(nParticles, NO_ENTRY, dtype=np.int64)
        self._startIndices[self._sortedKeys[isRunStart]] = np.nonzero(isRunStart)[0]

        self._bucketCounts = np.bincount(keys, minlength=nParticles).astype(np.int64)

    ######################################################################
    # -- Hashing -- #
    ######################################################################

    def positionToCellCoord(self, points: np.ndarray) -> np.ndarray:
        '''
        Integer cell coordinates floor(point / cellSize).

        Parameters:
        -----------
        points : np.ndarray
            A single point (2,) or points (M, 2)

        Returns:
        --------
        np.ndarray : Integer cell coordinates with the same shape
        '''
        return np.floor(np.asarray(points, dtype=float) / self._cellSize).astype(np.int64)

    @staticmethod
    def hashCell(cellX: np.ndarray | int, cellY: np.ndarray | int) -> np.ndarray | int:
        '''
        Unsigned 32-bit hash of a cell coordinate.

        hash = (x * 15823 + y * 9737333) mod 2^32, with negative
        coordinates wrapped to their two's-complement value first.
        '''
        x = np.asarray(cellX, dtype=np.int64) % const.hashModulus
        y = np.asarray(cellY, dtype=np.int64) % const.hashModulus
        hashed = (x * const.hashPrimeX + y * const.hashPrimeY) % const.hashModulus
        if hashed.ndim == 0:
            return int(hashed)
        return hashed

    def queryCellKey(self, cellCoord: np.ndarray | tuple[int, int]) -> int:
        '''
        Bucket key of a single cell: hashCell(cell) mod particleCount.

        Parameters:
        -----------
        cellCoord : np.ndarray | tuple[int, int]
            Integer (x, y) cell coordinate

        Returns:
        --------
        int : Bucket key in [0, particleCount)
        '''
        self._requireBuilt()
        cellX, cellY = cellCoord
        return int(self.hashCell(cellX, cellY) % self.particleCount)

    def _keysForCells(self, cells: np.ndarray, nBuckets: int) -> np.ndarray:
        '''Vectorized bucket keys for cell coordinates of shape (..., 2).'''
        return self.hashCell(cells[..., 0], cells[..., 1]) % nBuckets

    ######################################################################
    # -- Queries -- #
    ######################################################################

    def forEachInSurroundingCells(
        self,
        point: np.ndarray,
        radius: float,
        visitor: Callable[[int], None],
    ) -> None:
        '''
        Call visitor with every particle index within radius of point.

        Scans the buckets of the 9 cells around the point's home cell
        in CELL_OFFSETS order.

        Parameters:
        -----------
        point : np.ndarray
            Query point (2,)
        radius : float
            Search radius (at most the cell size)
        visitor : Callable[[int], None]
            Called once per particle found
        '''
        self._requireBuilt()
        point = np.asarray(point, dtype=float)
        homeCell = self.positionToCellCoord(point)
        nSlots = len(self._sortedKeys)
        scannedKeys: set[int] = set()

        for offset in CELL_OFFSETS:
            key = self.queryCellKey(homeCell + offset)
            if key in scannedKeys:
                continue
            scannedKeys.add(key)

            start = self._startIndices[key]
            if start == NO_ENTRY:
                continue

            for slot in range(int(start), nSlots):
                if self._sortedKeys[slot] != key:
                    break
                particleIndex = int(self._sortedIndices[slot])
                dist = np.linalg.norm(self._positions[particleIndex] - point)
                if dist <= radius:
                    visitor(particleIndex)

    def queryPoint(self, point: np.ndarray, radius: float) -> list[int]:
        '''Indices of all particles within radius of point.'''
        found: list[int] = []
        self.forEachInSurroundingCells(point, radius, found.append)
        return found

    def queryNeighbors(
        self, points: np.ndarray, radius: float
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        '''
        Batch form of forEachInSurroundingCells for many query points.

        For every query point, expands the sorted runs of its (deduplicated)
        9 surrounding buckets into candidate pairs, then filters the
        candidates by distance in one vectorized pass.

        Parameters:
        -----------
        points : np.ndarray
            Query points, shape (M, 2)
        radius : float
            Search radius (at most the cell size)

        Returns:
        --------
        tuple[np.ndarray, np.ndarray, np.ndarray] :
            (queryIndices, particleIndices, distances), one entry per pair
            with distance <= radius
        '''
        self._requireBuilt()
        points = np.asarray(points, dtype=float).reshape(-1, 2)
        nQueries = len(points)
        nStencil = len(CELL_OFFSETS)

        emptyInt = np.empty(0, dtype=np.int64)
        if nQueries == 0:
            return (emptyInt, emptyInt, np.empty(0))

        # Bucket keys of the 9 surrounding cells, shape (M, 9)
        homeCells = self.positionToCellCoord(points)
        stencilCells = homeCells[:, np.newaxis, :] + CELL_OFFSETS[np.newaxis, :, :]
        keys = self._keysForCells(stencilCells, self.particleCount)

        # Scan each distinct bucket once per query point
        keys.sort(axis=1)
        firstVisit = np.ones_like(keys, dtype=bool)
        firstVisit[:, 1:] = keys[:, 1:] != keys[:, :-1]

        runLengths = np.where(firstVisit, self._bucketCounts[keys], 0).ravel()
        runStarts = self._startIndices[keys].ravel()

        nCandidates = int(runLengths.sum())
        if nCandidates == 0:
            return (emptyInt, emptyInt, np.empty(0))

        # Expand every (query, bucket) run into its sorted slots
        runOwner = np.repeat(np.arange(len(runLengths)), runLengths)
        runOffsets = np.cumsum(runLengths) - runLengths
        slotWithinRun = np.arange(nCandidates) - runOffsets[runOwner]
        slots = runStarts[runOwner] + slotWithinRun

        queryIndices = runOwner // nStencil
        particleIndices = self._sortedIndices[slots]

        dist = np.linalg.norm(
            self._positions[particleIndices] - points[queryIndices], axis=1
        )
        within = dist <= radius

        return (queryIndices[within], particleIndices[within], dist[within])

    ######################################################################
    # -- Properties -- #
    ######################################################################

    @property
    def particleCount(self) -> int:
        '''Number of particles in the last rebuild.'''
        return len(self._sortedKeys)

    @property
    def cellSize(self) -> float:
        '''Cell edge length of the last rebuild.'''
        return self._cellSize

    @property
    def sortedKeys(self) -> np.ndarray:
        '''Bucket keys in ascending order (read-only copy).'''
        return self._sortedKeys.copy()

    @property
    def startIndices(self) -> np.ndarray:
        '''Start-index table (read-only copy).'''
        return self._startIndices.copy()

    def _requireBuilt(self) -> None:
        if self._positions is None:
            raise ValueError('Spatial hash grid queried before rebuild()')
