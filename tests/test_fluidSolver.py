# -- Fluid Solver Tests -- #

'''
Tick pipeline behavior: containment, derived-field invariants,
determinism, reset, parameter mutation, recovery, and lifecycle.
'''

import logging

import numpy as np
import pytest

from FluidSim import constants as const
from FluidSim.scenarios.particleBlock import BlockLayoutConfig
from FluidSim.sph.errors import ConfigurationError, FluidSimError, ParameterError, SimulationDisposedError
from FluidSim.sph.fluidSolver import FluidSolver
from FluidSim.sph.interaction import InteractionState
from FluidSim.sph.protocols import BoundaryBox, SimulationParameters


@pytest.fixture
def solver():
    '''200 seeded particles in the default [-2, 2]^2 container.'''
    sim = FluidSolver()
    sim.initialize(capacity=200, boundary=BoundaryBox.centered(2.0), seed=3)
    yield sim
    sim.dispose()


def quietParameters(**overrides) -> SimulationParameters:
    '''No gravity and no pressure, so only the tested term acts.'''
    values = dict(gravity=0.0, stiffness=0.0, viscosity=0.0)
    values.update(overrides)
    return SimulationParameters(**values)


#--------------------------------------------------------------------#
# -- Invariants -- #
#--------------------------------------------------------------------#

def testParticlesStayInsideBoundaryEveryTick(solver):
    box = solver.boundary
    stir = InteractionState(active=True, position=np.array([0.0, -1.5]), strength=30.0)

    for tick in range(120):
        solver.advance(1.0 / 30.0, stir if 40 <= tick < 80 else None)
        positions = solver.getParticleSnapshot().positions
        assert np.all(positions >= box.boundaryMin)
        assert np.all(positions <= box.boundaryMax)


def testSeededBlockStartsOffTheWalls(solver):
    box = solver.boundary
    for _ in range(2):
        positions = solver.getParticleSnapshot().positions
        assert np.all(positions > box.boundaryMin)
        assert np.all(positions < box.boundaryMax)
        solver.advance(1.0 / 60.0)
        solver.reset()


def testDensityAndPressureInvariants(solver):
    for _ in range(30):
        solver.advance(1.0 / 60.0)
        snapshot = solver.getParticleSnapshot()
        assert np.all(snapshot.densities >= const.densityEpsilon)
        assert np.all(snapshot.pressures >= 0.0)


def testDensityCountsSelfAndNeighbors():
    sim = FluidSolver()
    sim.initialize(
        capacity=3, boundary=([0.0, 0.0], [4.0, 4.0]),
        parameters=quietParameters(), initialCount=0,
    )
    sim.spawn([1.0, 1.0])
    sim.spawn([1.2, 1.0])   # h/2 away: weight 0.5
    sim.spawn([3.0, 3.0])   # isolated

    sim.advance(0.0)
    densities = sim.getParticleSnapshot().densities

    np.testing.assert_allclose(densities, [1.5, 1.5, 1.0])


def testPressureIsClampedEquationOfState():
    sim = FluidSolver()
    sim.initialize(
        capacity=3, boundary=([0.0, 0.0], [4.0, 4.0]),
        parameters=quietParameters(stiffness=10.0, restDensity=1.2), initialCount=0,
    )
    sim.spawn([1.0, 1.0])
    sim.spawn([1.2, 1.0])
    sim.spawn([3.0, 3.0])

    sim.advance(0.0)
    pressures = sim.getParticleSnapshot().pressures

    # 10 * (1.5 - 1.2) for the pair; the loner is under rest density
    np.testing.assert_allclose(pressures, [3.0, 3.0, 0.0])


def testDerivedFieldsValidBeforeFirstTick(solver):
    snapshot = solver.getParticleSnapshot()
    assert np.all(snapshot.densities >= 1.0)


#--------------------------------------------------------------------#
# -- Concrete Scenarios -- #
#--------------------------------------------------------------------#

def testParticlesFallAndStayInContainer():
    sim = FluidSolver()
    sim.initialize(
        capacity=100,
        boundary=([0.0, 0.0], [10.0, 10.0]),
        parameters=SimulationParameters(gravity=9.8),
        initialCount=0,
    )
    for k in range(100):
        assert sim.spawn([0.05 + 0.1 * k, 8.0]) is not None

    for _ in range(60):
        sim.advance(1.0 / 60.0)

    positions = sim.getParticleSnapshot().positions
    assert len(positions) == 100
    assert np.all(positions[:, 1] < 8.0)
    assert np.all(positions[:, 1] >= 0.0)
    assert np.all((positions[:, 0] >= 0.0) & (positions[:, 0] <= 10.0))


def testBlockFallsTowardFloor():
    sim = FluidSolver()
    sim.initialize(capacity=60, boundary=([0.0, 0.0], [3.0, 3.0]), seed=1)
    startHeight = np.mean(sim.getParticleSnapshot().positions[:, 1])

    for _ in range(120):
        sim.advance(1.0 / 60.0)

    assert np.mean(sim.getParticleSnapshot().positions[:, 1]) < startHeight
    assert sim.currentState.maxVelocity <= const.maxVelocity * (1.0 + 1e-9)


def testZeroViscosityLeavesOpposingVelocitiesUntouched():
    sim = FluidSolver()
    sim.initialize(
        capacity=2, boundary=([0.0, 0.0], [4.0, 4.0]),
        parameters=quietParameters(viscosity=0.0), initialCount=0,
    )
    sim.spawn([1.9, 2.0], [1.0, 0.0])
    sim.spawn([2.1, 2.0], [-1.0, 0.0])

    sim.advance(1.0 / 60.0)

    velocities = sim.getParticleSnapshot().velocities
    np.testing.assert_array_equal(velocities, [[1.0, 0.0], [-1.0, 0.0]])


def testViscosityDampsOpposingVelocities():
    sim = FluidSolver()
    sim.initialize(
        capacity=2, boundary=([0.0, 0.0], [4.0, 4.0]),
        parameters=quietParameters(viscosity=0.5), initialCount=0,
    )
    sim.spawn([1.9, 2.0], [1.0, 0.0])
    sim.spawn([2.1, 2.0], [-1.0, 0.0])

    sim.advance(1.0 / 60.0)

    velocities = sim.getParticleSnapshot().velocities
    assert 0.0 < velocities[0, 0] < 1.0
    assert -1.0 < velocities[1, 0] < 0.0


def testPressurePushesCrowdedPairApart():
    sim = FluidSolver()
    sim.initialize(
        capacity=2, boundary=([0.0, 0.0], [4.0, 4.0]),
        parameters=quietParameters(stiffness=50.0), initialCount=0,
    )
    sim.spawn([1.95, 2.0])
    sim.spawn([2.05, 2.0])

    sim.advance(1.0 / 60.0)

    velocities = sim.getParticleSnapshot().velocities
    assert velocities[0, 0] < 0.0
    assert velocities[1, 0] > 0.0
    assert velocities[0, 0] == pytest.approx(-velocities[1, 0])


def testGravityOnlyAffectsVerticalAxis3D():
    sim = FluidSolver()
    sim.initialize(
        capacity=1, boundary=([0.0, 0.0, 0.0], [2.0, 2.0, 2.0]),
        parameters=quietParameters(gravity=9.8), initialCount=0,
    )
    sim.spawn([1.0, 1.5, 1.0])

    sim.advance(0.01)

    velocity = sim.getParticleSnapshot().velocities[0]
    np.testing.assert_allclose(velocity, [0.0, -0.098, 0.0])


#--------------------------------------------------------------------#
# -- Determinism and Reset -- #
#--------------------------------------------------------------------#

def runTicks(seed: int, dts: list[float]) -> np.ndarray:
    sim = FluidSolver()
    sim.initialize(capacity=150, boundary=BoundaryBox.centered(2.0), seed=seed)
    for dt in dts:
        sim.advance(dt)
    positions = sim.getParticleSnapshot().positions.copy()
    sim.dispose()
    return positions


def testIdenticalRunsAreBitIdentical():
    dts = [1.0 / 60.0, 1.0 / 45.0, 1.0 / 30.0, 0.1] * 10
    np.testing.assert_array_equal(runTicks(11, dts), runTicks(11, dts))


def testDifferentSeedsDiffer():
    dts = [1.0 / 60.0] * 5
    assert not np.array_equal(runTicks(1, dts), runTicks(2, dts))


def testResetReturnsToSeededState(solver):
    initial = solver.getParticleSnapshot()

    for _ in range(20):
        solver.advance(1.0 / 60.0)
    solver.spawn([0.0, 0.0])
    solver.reset()

    afterReset = solver.getParticleSnapshot()
    np.testing.assert_array_equal(afterReset.indices, initial.indices)
    np.testing.assert_array_equal(afterReset.positions, initial.positions)
    np.testing.assert_array_equal(afterReset.velocities, initial.velocities)
    np.testing.assert_array_equal(afterReset.densities, initial.densities)
    assert solver.time == 0.0
    assert solver.stepCount == 0


def testResetTwiceEqualsResetOnce(solver):
    for _ in range(10):
        solver.advance(1.0 / 60.0)

    solver.reset()
    once = solver.getParticleSnapshot()
    solver.reset()
    twice = solver.getParticleSnapshot()

    np.testing.assert_array_equal(once.positions, twice.positions)
    np.testing.assert_array_equal(once.velocities, twice.velocities)
    np.testing.assert_array_equal(once.densities, twice.densities)


def testRunAfterResetRepeatsTrajectory(solver):
    for _ in range(15):
        solver.advance(1.0 / 60.0)
    first = solver.getParticleSnapshot().positions

    solver.reset()
    for _ in range(15):
        solver.advance(1.0 / 60.0)

    np.testing.assert_array_equal(solver.getParticleSnapshot().positions, first)


#--------------------------------------------------------------------#
# -- Time Step Handling -- #
#--------------------------------------------------------------------#

def testTimeStepIsClamped(solver):
    solver.advance(5.0)
    assert solver.currentState.dt == pytest.approx(const.maxTimeStep)
    assert solver.time == pytest.approx(const.maxTimeStep)


@pytest.mark.parametrize('dt', [-0.01, float('nan'), float('inf')])
def testInvalidTimeStepRejected(solver, dt):
    with pytest.raises(ConfigurationError):
        solver.advance(dt)


def testZeroTimeStepDoesNotMove(solver):
    before = solver.getParticleSnapshot().positions
    solver.advance(0.0)
    np.testing.assert_array_equal(solver.getParticleSnapshot().positions, before)


#--------------------------------------------------------------------#
# -- Parameters -- #
#--------------------------------------------------------------------#

def testSetParameterAppliesOnNextTick():
    sim = FluidSolver()
    sim.initialize(
        capacity=1, boundary=([0.0, 0.0], [4.0, 4.0]),
        parameters=quietParameters(), initialCount=0,
    )
    sim.spawn([2.0, 2.0])

    sim.advance(0.01)
    np.testing.assert_array_equal(sim.getParticleSnapshot().velocities[0], [0.0, 0.0])

    sim.setParameter('gravity', 5.0)
    sim.advance(0.01)
    assert sim.getParticleSnapshot().velocities[0, 1] == pytest.approx(-0.05)


def testRejectedParameterKeepsPreviousValue(solver):
    with pytest.raises(ParameterError):
        solver.setParameter('viscosity', -0.5)
    with pytest.raises(ParameterError):
        solver.setParameter('bogus', 1.0)

    assert solver.getParameters().viscosity == const.viscosity


def testBoundaryDampingMustStayInelastic(solver):
    with pytest.raises(ParameterError):
        solver.setParameter('boundaryDamping', 1.0)
    assert solver.getParameters().boundaryDamping == const.boundaryDamping

    solver.setParameter('boundaryDamping', 0.99)
    assert solver.getParameters().boundaryDamping == 0.99


def testGetParametersReturnsCopy(solver):
    params = solver.getParameters()
    params.viscosity = 0.9
    assert solver.getParameters().viscosity == const.viscosity


def testSmoothingRadiusReconfiguresHash(solver):
    solver.setParameter('smoothingRadius', 0.6)
    assert solver._hash.cellSize == 0.6

    solver.advance(1.0 / 60.0)
    assert np.all(solver.getParticleSnapshot().densities >= 1.0)


def testKernelTypeSwitch(solver):
    solver.setParameter('kernelType', 'quadratic')
    assert solver._kernel.name == 'quadratic'
    solver.advance(1.0 / 60.0)


def testParameterSchema(solver):
    keys = [item.key for item in solver.parameterSchema()]
    assert 'viscosity' in keys


#--------------------------------------------------------------------#
# -- Interaction and External Forces -- #
#--------------------------------------------------------------------#

def testPointerRepelsNearbyParticles():
    sim = FluidSolver()
    sim.initialize(
        capacity=2, boundary=([0.0, 0.0], [4.0, 4.0]),
        parameters=quietParameters(), initialCount=0,
    )
    sim.spawn([1.5, 2.0])
    sim.spawn([3.5, 2.0])   # outside the pointer radius

    pointer = InteractionState(active=True, position=np.array([2.0, 2.0]))
    sim.advance(1.0 / 60.0, pointer)

    velocities = sim.getParticleSnapshot().velocities
    assert velocities[0, 0] < 0.0
    assert velocities[0, 1] > 0.0   # upward lift
    np.testing.assert_array_equal(velocities[1], [0.0, 0.0])


def testAdapterStateUsedWhenNoInteractionPassed():
    sim = FluidSolver()
    sim.initialize(
        capacity=1, boundary=([0.0, 0.0], [4.0, 4.0]),
        parameters=quietParameters(), initialCount=0,
    )
    sim.spawn([1.5, 2.0])

    sim.interaction.update(True, np.array([2.0, 2.0]), mode='attract')
    sim.advance(1.0 / 60.0)
    assert sim.getParticleSnapshot().velocities[0, 0] > 0.0

    sim.interaction.release()
    before = sim.getParticleSnapshot().velocities.copy()
    sim.advance(1.0 / 60.0)
    np.testing.assert_array_equal(sim.getParticleSnapshot().velocities, before)


def testApplyForceActsForOneTick():
    sim = FluidSolver()
    sim.initialize(
        capacity=1, boundary=([0.0, 0.0], [4.0, 4.0]),
        parameters=quietParameters(), initialCount=0,
    )
    sim.spawn([2.0, 2.0])

    sim.applyForce([2.5, 2.0], [6.0, 0.0], radius=1.0)
    sim.advance(0.01)
    assert sim.getParticleSnapshot().velocities[0, 0] == pytest.approx(0.03)

    sim.advance(0.01)
    assert sim.getParticleSnapshot().velocities[0, 0] == pytest.approx(0.03)


def testApplyForceValidatesShape(solver):
    with pytest.raises(ConfigurationError):
        solver.applyForce([0.0, 0.0, 0.0], [1.0, 0.0])
    with pytest.raises(ConfigurationError):
        solver.applyForce([0.0, 0.0], [1.0, 0.0], radius=0.0)
    with pytest.raises(ConfigurationError):
        solver.applyForce([0.0, 0.0], [1.0, 0.0], radius=float('nan'))


#--------------------------------------------------------------------#
# -- Capacity, Recovery, and Lifecycle -- #
#--------------------------------------------------------------------#

def testSpawnOnFullSolverSignalsCapacity(solver):
    assert solver.stats.available == 0
    assert solver.spawn([0.0, 0.0]) is None

    solver.deactivate(10)
    assert solver.spawn([0.0, 0.0]) == 10


def testDeactivatedParticlesAreNotSimulated(solver):
    solver.deactivate(0)
    frozen = solver.store.positions[0].copy()

    for _ in range(10):
        solver.advance(1.0 / 60.0)

    np.testing.assert_array_equal(solver.store.positions[0], frozen)
    assert 0 not in solver.getParticleSnapshot().indices


def testNonFiniteParticleIsRecovered(solver, caplog):
    solver.store.velocities[5] = [np.nan, 0.0]

    with caplog.at_level(logging.WARNING, logger='FluidSim.sph.fluidSolver'):
        solver.advance(1.0 / 60.0)

    snapshot = solver.getParticleSnapshot()
    assert np.all(np.isfinite(snapshot.positions))
    assert np.all(np.isfinite(snapshot.velocities))
    assert solver.currentState.recoveredParticles >= 1
    assert solver.totalRecovered >= 1
    assert any('non-finite' in r.getMessage() for r in caplog.records)


def testExtremeStiffnessDoesNotLeakNonFinite(solver):
    solver.setParameter('stiffness', 1e308)
    for _ in range(3):
        solver.advance(1.0 / 60.0)

    snapshot = solver.getParticleSnapshot()
    box = solver.boundary
    assert np.all(np.isfinite(snapshot.positions))
    assert np.all(snapshot.positions >= box.boundaryMin)
    assert np.all(snapshot.positions <= box.boundaryMax)


def testSnapshotIsIndependentOfLaterTicks(solver):
    snapshot = solver.getParticleSnapshot()
    before = snapshot.positions.copy()
    solver.advance(1.0 / 60.0)
    np.testing.assert_array_equal(snapshot.positions, before)


def testInitializeRejectsBadConfiguration():
    sim = FluidSolver()
    with pytest.raises(ConfigurationError):
        sim.initialize(capacity=0, boundary=BoundaryBox.centered(2.0))
    with pytest.raises(ConfigurationError):
        sim.initialize(capacity=10, boundary=([1.0, 0.0], [0.0, 1.0]))
    with pytest.raises(ConfigurationError):
        sim.initialize(capacity=10, boundary=BoundaryBox.centered(2.0), initialCount=11)


def testUseBeforeInitialize():
    with pytest.raises(FluidSimError):
        FluidSolver().advance(0.01)


def testDisposeInvalidatesSolver(solver):
    solver.dispose()
    with pytest.raises(SimulationDisposedError):
        solver.advance(1.0 / 60.0)
    with pytest.raises(SimulationDisposedError):
        solver.getParticleSnapshot()
    with pytest.raises(SimulationDisposedError):
        solver.reset()
    # Second dispose is harmless
    solver.dispose()


def testThreeDimensionalRun():
    sim = FluidSolver()
    box = BoundaryBox.centered(1.0, dimensions=3)
    sim.initialize(capacity=64, boundary=box, layout=BlockLayoutConfig.calm())

    for _ in range(30):
        sim.advance(1.0 / 60.0)

    positions = sim.getParticleSnapshot().positions
    assert positions.shape == (64, 3)
    assert np.all(box.contains(positions))
