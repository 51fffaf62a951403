# -- Spatial Hash Grid Tests -- #

'''
Neighbor completeness of the spatial hash grid against brute force
and a k-d tree, plus hashing and error cases.
'''

import numpy as np
import pytest
from scipy.spatial import cKDTree

from physicsSandbox.StringFluid.sph.neighborSearch import SpatialHashGrid, NO_ENTRY


def bruteForceNeighbors(positions, point, radius):
    dist = np.linalg.norm(positions - point, axis=1)
    return set(np.nonzero(dist <= radius)[0].tolist())


def testHashCellWrapsNegativeCoordinates():
    # -1 wraps to 2^32 - 1 before multiplication
    expected = ((2 ** 32 - 1) * 15823 + 0 * 9737333) % 2 ** 32
    assert SpatialHashGrid.hashCell(-1, 0) == expected
    assert SpatialHashGrid.hashCell(0, 0) == 0
    assert SpatialHashGrid.hashCell(1, 1) == 15823 + 9737333


def testHashCellVectorizedMatchesScalar():
    xs = np.array([-5, -1, 0, 3, 1000])
    ys = np.array([7, -2, 0, -9, 12])
    batch = SpatialHashGrid.hashCell(xs, ys)
    for x, y, h in zip(xs, ys, batch):
        assert SpatialHashGrid.hashCell(int(x), int(y)) == h


def testPositionToCellCoordUsesFloor():
    grid = SpatialHashGrid()
    grid.rebuild(np.zeros((3, 2)), 0.5)
    assert grid.positionToCellCoord(np.array([-0.1, 0.1])).tolist() == [-1, 0]
    assert grid.positionToCellCoord(np.array([0.99, -0.5])).tolist() == [1, -1]


def testStartIndicesPointToKeyRuns():
    rng = np.random.default_rng(3)
    positions = rng.uniform(-4.0, 4.0, size=(60, 2))
    grid = SpatialHashGrid()
    grid.rebuild(positions, 0.5)

    keys = grid.sortedKeys
    starts = grid.startIndices
    assert np.all(np.diff(keys) >= 0)
    for key in range(grid.particleCount):
        if starts[key] == NO_ENTRY:
            assert key not in keys
        else:
            assert keys[starts[key]] == key
            assert starts[key] == 0 or keys[starts[key] - 1] != key


def testQueryPointMatchesBruteForce():
    rng = np.random.default_rng(11)
    positions = rng.uniform(-4.0, 4.0, size=(200, 2))
    radius = 0.5
    grid = SpatialHashGrid()
    grid.rebuild(positions, radius)

    for point in rng.uniform(-4.5, 4.5, size=(40, 2)):
        found = grid.queryPoint(point, radius)
        assert len(found) == len(set(found))
        assert set(found) == bruteForceNeighbors(positions, point, radius)


def testBatchQueryMatchesKdTree():
    rng = np.random.default_rng(5)
    positions = rng.uniform(-3.0, 3.0, size=(300, 2))
    radius = 0.5
    grid = SpatialHashGrid()
    grid.rebuild(positions, radius)

    queryIdx, particleIdx, dist = grid.queryNeighbors(positions, radius)
    found = {(int(q), int(p)) for q, p in zip(queryIdx, particleIdx)}
    assert len(found) == len(queryIdx)

    tree = cKDTree(positions)
    expected = {
        (i, int(j))
        for i, neighbors in enumerate(tree.query_ball_point(positions, radius))
        for j in neighbors
    }
    assert found == expected
    assert dist == pytest.approx(
        np.linalg.norm(positions[particleIdx] - positions[queryIdx], axis=1)
    )


def testFewParticlesAliasWithoutDuplicates():
    # With 4 particles every cell lands in one of 4 buckets, so the
    # 9 stencil cells are guaranteed to alias
    positions = np.array([[0.1, 0.1], [0.3, 0.2], [2.0, 2.0], [-0.2, 0.1]])
    grid = SpatialHashGrid()
    grid.rebuild(positions, 0.5)

    found = grid.queryPoint(np.array([0.1, 0.1]), 0.5)
    assert sorted(found) == [0, 1, 3]


def testVisitorIncludesBoundaryDistance():
    positions = np.array([[0.0, 0.0], [0.5, 0.0]])
    grid = SpatialHashGrid()
    grid.rebuild(positions, 0.5)

    visited = []
    grid.forEachInSurroundingCells(np.array([0.0, 0.0]), 0.5, visited.append)
    assert sorted(visited) == [0, 1]


def testRebuildRejectsInvalidInput():
    grid = SpatialHashGrid()
    with pytest.raises(ValueError):
        grid.rebuild(np.empty((0, 2)), 0.5)
    with pytest.raises(ValueError):
        grid.rebuild(np.zeros((3, 2)), 0.0)


def testQueryBeforeRebuildRaises():
    with pytest.raises(ValueError):
        SpatialHashGrid().queryPoint(np.zeros(2), 0.5)
