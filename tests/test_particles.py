# -- Particle Store Tests -- #

'''
Slot management, seeding, reset, and disposal of the fixed-capacity
particle store.
'''

import numpy as np
import pytest

from FluidSim.sph.errors import ConfigurationError, SimulationDisposedError
from FluidSim.sph.particles import ParticleStore


def testSpawnSucceedsExactlyCapacityTimes():
    store = ParticleStore(capacity=5)

    results = [store.spawn(np.array([float(k), 0.0])) for k in range(6)]

    assert results[:5] == [0, 1, 2, 3, 4]
    assert results[5] is None
    assert store.nActive == 5


def testSpawnNeverReallocates():
    store = ParticleStore(capacity=3)
    positionsBuffer = store.positions
    for k in range(4):
        store.spawn(np.array([0.0, float(k)]))
    assert store.positions is positionsBuffer
    assert store.positions.shape == (3, 2)


def testDeactivateKeepsSlotAndSpawnReusesLowestFree():
    store = ParticleStore(capacity=4)
    for k in range(4):
        store.spawn(np.array([float(k), 1.0]), np.array([0.5, 0.0]))

    store.deactivate(1)

    assert store.activeIndices().tolist() == [0, 2, 3]
    # Data left in place, no compaction
    np.testing.assert_array_equal(store.positions[1], [1.0, 1.0])
    np.testing.assert_array_equal(store.positions[3], [3.0, 1.0])

    index = store.spawn(np.array([9.0, 9.0]))
    assert index == 1
    np.testing.assert_array_equal(store.velocities[1], [0.0, 0.0])


def testDeactivateOutOfRange():
    store = ParticleStore(capacity=2)
    with pytest.raises(IndexError):
        store.deactivate(2)


def testSpawnRejectsBadPosition():
    store = ParticleStore(capacity=2)
    with pytest.raises(ConfigurationError):
        store.spawn(np.array([np.nan, 0.0]))
    with pytest.raises(ConfigurationError):
        store.spawn(np.array([0.0, 0.0, 0.0]))
    assert store.nActive == 0


def testForEachActiveVisitsInIndexOrder():
    store = ParticleStore(capacity=6)
    for k in range(6):
        store.spawn(np.array([float(k), 0.0]))
    store.deactivate(0)
    store.deactivate(4)

    visited = []
    store.forEachActive(visited.append)

    assert visited == [1, 2, 3, 5]


def testSeedActivatesPrefixAndResetRestores():
    store = ParticleStore(capacity=5)
    seedPositions = np.array([[0.0, 1.0], [1.0, 1.0], [2.0, 1.0]])
    seedVelocities = np.array([[0.1, 0.0], [0.0, 0.2], [0.0, 0.0]])
    store.seed(seedPositions, seedVelocities)

    assert store.activeIndices().tolist() == [0, 1, 2]

    # Disturb the state
    store.positions[0] = [5.0, 5.0]
    store.velocities[2] = [3.0, 3.0]
    store.densities[:] = 7.0
    store.deactivate(1)
    store.spawn(np.array([4.0, 4.0]))

    store.reset()

    assert store.activeIndices().tolist() == [0, 1, 2]
    np.testing.assert_array_equal(store.positions[:3], seedPositions)
    np.testing.assert_array_equal(store.velocities[:3], seedVelocities)
    np.testing.assert_array_equal(store.densities, 0.0)
    assert not store.active[3]


def testResetIsIdempotent():
    store = ParticleStore(capacity=4, dimensions=3)
    store.seed(np.arange(6, dtype=float).reshape(2, 3))
    store.positions += 1.0

    store.reset()
    once = (store.positions.copy(), store.velocities.copy(), store.active.copy())
    store.reset()

    np.testing.assert_array_equal(store.positions, once[0])
    np.testing.assert_array_equal(store.velocities, once[1])
    np.testing.assert_array_equal(store.active, once[2])


def testSeedOverCapacityRejected():
    store = ParticleStore(capacity=2)
    with pytest.raises(ConfigurationError):
        store.seed(np.zeros((3, 2)))


@pytest.mark.parametrize('capacity', [0, -3])
def testNonPositiveCapacityRejected(capacity):
    with pytest.raises(ConfigurationError):
        ParticleStore(capacity=capacity)


def testStatsAndDiagnostics():
    store = ParticleStore(capacity=4)
    store.spawn(np.zeros(2), np.array([3.0, 4.0]))
    store.spawn(np.ones(2), np.array([0.0, 1.0]))

    stats = store.stats()
    assert (stats.capacity, stats.active, stats.available) == (4, 2, 2)
    assert store.maxSpeed() == pytest.approx(5.0)
    assert store.kineticEnergy() == pytest.approx(0.5 * (25.0 + 1.0))


def testDisposeMakesStoreUnusable():
    store = ParticleStore(capacity=2)
    store.dispose()

    assert store.isDisposed
    assert store.positions is None
    with pytest.raises(SimulationDisposedError):
        store.spawn(np.zeros(2))
    with pytest.raises(SimulationDisposedError):
        store.reset()
