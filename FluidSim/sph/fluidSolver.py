# -- Simplified SPH-like Fluid Solver -- #

'''
Interactive particle fluid solver.

Advances a fixed-capacity set of particles under gravity, a clamped
pressure term, neighbor viscosity, pointer interaction, and a
bouncing container. The model is an SPH look-alike tuned for
30-60 fps with a few hundred particles, not a physical solver:

- Density is a sum of falloff weights (see kernels.py) instead of a
  normalized kernel summation of masses.
- Pressure is linear in density and clamped at zero, so particles
  only push apart and never pull together through pressure.
- Each particle accumulates forces from its own neighbor query; the
  pair forces are not mirrored onto the neighbor, so exact momentum
  symmetry is not enforced.

Algorithm per tick:
    1. Clamp dt to maxTimeStep
    2. Rebuild the spatial hash from active positions
    3. Density: rho_i = max(eps, sum_j W(|r_i - r_j|, h))   (j includes i)
    4. Pressure: p_i = max(0, k * (rho_i - rho_0))
    5. Accelerations: gravity + pressure push + viscosity
       + pointer interaction + queued external forces
    6. Integrate (symplectic Euler with speed cap)
    7. Recover particles that went non-finite
    8. Clamp to the container with a damped bounce

advance() is synchronous and must not be called concurrently; read
particle data through getParticleSnapshot() between ticks.

References:
-----------
Muller et al. (2003) -- Particle-based fluid simulation for
    interactive applications
Monaghan (1992) -- Smoothed Particle Hydrodynamics

FluidSim [10/19/2026]
'''

from __future__ import annotations

import logging
import math

import numpy as np

from FluidSim import constants as const
from FluidSim.scenarios.particleBlock import BlockLayoutConfig, createParticleBlock
from FluidSim.sph.boundaryHandling import BoundaryHandler
from FluidSim.sph.errors import ConfigurationError, FluidSimError, SimulationDisposedError
from FluidSim.sph.interaction import InteractionAdapter, InteractionState, applyForce
from FluidSim.sph.kernels import SphKernel, createKernel
from FluidSim.sph.neighborSearch import SpatialHash
from FluidSim.sph.particles import ParticleStore, PoolStats
from FluidSim.sph.protocols import (
    BoundaryBox,
    ParameterSpec,
    ParticleSnapshot,
    SimulationParameters,
    SimulationState,
    parameterSchema,
)
from FluidSim.sph.timeIntegration import SymplecticEuler, TimeIntegrator, recoverNonFinite

logger = logging.getLogger(__name__)


class FluidSolver:
    '''
    Owns the particle store and spatial hash and runs the tick pipeline.

    Construct, then call initialize() before anything else.

    Parameters:
    -----------
    integrator : TimeIntegrator | None
        Time integrator (defaults to SymplecticEuler)
    interaction : InteractionAdapter | None
        Pointer adapter used when advance() gets no explicit state
    '''

    def __init__(
        self,
        integrator: TimeIntegrator | None = None,
        interaction: InteractionAdapter | None = None,
    ) -> None:
        self._integrator = integrator or SymplecticEuler()
        self._interaction = interaction or InteractionAdapter()

        self._store: ParticleStore | None = None
        self._hash: SpatialHash | None = None
        self._boundary: BoundaryHandler | None = None
        self._params: SimulationParameters | None = None
        self._kernel: SphKernel | None = None

        self._neighbors: list[tuple[np.ndarray, np.ndarray]] = []
        self._pendingForces: list[tuple[np.ndarray, np.ndarray, float]] = []

        self._time = 0.0
        self._step = 0
        self._lastDt = 0.0
        self._lastRecovered = 0
        self._totalRecovered = 0
        self._disposed = False

    ######################################################################
    # -- Initialization -- #
    ######################################################################

    def initialize(
        self,
        capacity: int,
        boundary: BoundaryBox | tuple,
        parameters: SimulationParameters | None = None,
        initialCount: int | None = None,
        seed: int = 0,
        layout: BlockLayoutConfig | None = None,
        inset: float = 0.0,
    ) -> None:
        '''
        Allocate storage and seed the starting configuration.

        Parameters:
        -----------
        capacity : int
            Number of particle slots, must be > 0
        boundary : BoundaryBox | tuple
            Container, or a (boundaryMin, boundaryMax) pair
        parameters : SimulationParameters | None
            Initial parameters (defaults if omitted)
        initialCount : int | None
            Particles in the seeded block; defaults to capacity
        seed : int
            Random seed for the layout jitter
        layout : BlockLayoutConfig | None
            Seeded block layout settings
        inset : float
            Wall inset, e.g. the visual particle radius
        '''
        self._checkNotDisposed()

        if not isinstance(boundary, BoundaryBox):
            boundaryMin, boundaryMax = boundary
            boundary = BoundaryBox(boundaryMin, boundaryMax)
        dimensions = boundary.dimensions

        params = SimulationParameters(**(parameters or SimulationParameters()).toDict())

        if initialCount is None:
            initialCount = capacity
        if not 0 <= initialCount <= capacity:
            raise ConfigurationError(
                f'initialCount must be in [0, {capacity}], got {initialCount}'
            )

        store = ParticleStore(capacity, dimensions)
        positions, velocities = createParticleBlock(
            count=initialCount,
            boundary=boundary,
            smoothingRadius=params.smoothingRadius,
            rng=np.random.default_rng(seed),
            config=layout or BlockLayoutConfig(),
        )
        store.seed(positions, velocities)

        self._store = store
        self._params = params
        self._kernel = createKernel(params.kernelType)
        self._hash = SpatialHash(params.smoothingRadius, dimensions)
        self._boundary = BoundaryHandler(boundary, inset=inset)
        self._restartClock()
        self._refreshDerivedFields()

        logger.debug(
            'Initialized fluid: capacity=%d, seeded=%d, dimensions=%d',
            capacity, initialCount, dimensions,
        )

    ######################################################################
    # -- Main Tick -- #
    ######################################################################

    def advance(self, dt: float, interaction: InteractionState | None = None) -> None:
        '''
        Run one simulation tick.

        Parameters:
        -----------
        dt : float
            Elapsed time [s]; clamped to parameters.maxTimeStep
        interaction : InteractionState | None
            Pointer state for this tick; the adapter's stored state
            is used when omitted
        '''
        self._checkReady()
        if not math.isfinite(dt) or dt < 0.0:
            raise ConfigurationError(f'Time step must be finite and >= 0, got {dt}')

        dt = min(dt, self._params.maxTimeStep)
        store = self._store
        indices = store.activeIndices()

        if interaction is None:
            interaction = self._interaction.current

        # Overflow is handled by the non-finite recovery below
        with np.errstate(over='ignore', invalid='ignore'):
            # 1-3. Index, density, pressure
            self._rebuildIndex(indices)
            self._computeDensityPressure(indices)

            # 4. Forces
            self._computeAccelerations(indices, interaction)
            self._pendingForces.clear()

            # 5. Integrate
            self._integrator.integrate(store, indices, dt, self._params.maxVelocity)

        # 6. Non-finite recovery
        recovered = recoverNonFinite(store, indices, self._boundary.box.center)
        self._lastRecovered = len(recovered)
        if self._lastRecovered:
            self._totalRecovered += self._lastRecovered
            logger.warning(
                'Recovered %d non-finite particle(s) at step %d: %s',
                self._lastRecovered, self._step, recovered[:10].tolist(),
            )

        # 7. Boundary
        self._boundary.enforceBoundary(store, indices, self._params.boundaryDamping)

        self._time += dt
        self._step += 1
        self._lastDt = dt

    ######################################################################
    # -- Density and Pressure -- #
    ######################################################################

    def _rebuildIndex(self, indices: np.ndarray) -> None:
        self._hash.build(self._store.positions, indices)

    def _computeDensityPressure(self, indices: np.ndarray) -> None:
        '''
        Density from falloff weights, then the clamped equation of state.

        rho_i = max(eps, sum_j W(|r_i - r_j|, h))
        p_i   = max(0, k * (rho_i - rho_0))

        The neighbor query of each particle is kept for the force pass.
        '''
        p = self._store
        h = self._params.smoothingRadius
        kernel = self._kernel

        self._neighbors = []
        for i in indices:
            nbrIdx, nbrDist = self._hash.queryWithDistance(p.positions[i], h)
            self._neighbors.append((nbrIdx, nbrDist))
            p.densities[i] = np.sum(kernel.evaluateBatch(nbrDist, h))

        if len(indices) == 0:
            return

        p.densities[indices] = np.maximum(p.densities[indices], const.densityEpsilon)
        p.pressures[indices] = np.maximum(
            0.0, self._params.stiffness * (p.densities[indices] - self._params.restDensity)
        )

    ######################################################################
    # -- Acceleration Computation -- #
    ######################################################################

    def _computeAccelerations(
        self, indices: np.ndarray, interaction: InteractionState
    ) -> None:
        '''
        Accumulate accelerations for every active particle.

        Gravity (unit mass, along -y):
            a_y -= g

        Pressure push, from neighbor j toward i:
            a_i += (r_i - r_j)/|r_ij| * (p_i + p_j)/2 * W_ij * s

        Viscosity (velocity blending):
            a_i += (v_j - v_i) * W_ij * mu

        Pointer interaction and queued applyForce() calls are added
        on top.
        '''
        p = self._store
        params = self._params
        h = params.smoothingRadius
        kernel = self._kernel

        p.accelerations[indices] = 0.0
        if len(indices) == 0:
            return
        p.accelerations[indices, 1] -= params.gravity

        for i, (nbrIdx, nbrDist) in zip(indices, self._neighbors):
            valid = (nbrIdx != i) & (nbrDist > const.minPairDistance)
            if not np.any(valid):
                continue
            j = nbrIdx[valid]
            dist = nbrDist[valid]
            w = kernel.evaluateBatch(dist, h)

            # Pressure push away from each neighbor
            direction = (p.positions[i] - p.positions[j]) / dist[:, np.newaxis]
            avgPressure = 0.5 * (p.pressures[i] + p.pressures[j])
            pressureCoeff = avgPressure * w * params.pressureScale
            accel = pressureCoeff @ direction

            # Viscosity pulls velocity toward the neighborhood's
            if params.viscosity > 0.0:
                dv = p.velocities[j] - p.velocities[i]
                accel += (w * params.viscosity) @ dv

            p.accelerations[i] += accel

        positions = p.positions[indices]
        p.accelerations[indices] += self._interaction.accelerationFor(positions, params, interaction)

        for center, force, radius in self._pendingForces:
            p.accelerations[indices] += applyForce(positions, center, force, radius)

    ######################################################################
    # -- Runtime Control -- #
    ######################################################################

    def setParameter(self, name: str, value: object) -> None:
        '''
        Change one parameter; it takes effect on the next tick.

        Raises:
        -------
        ParameterError : Unknown name or invalid value (the old value stays)
        '''
        self._checkReady()
        updated = self._params.withValue(name, value)

        if name == 'smoothingRadius':
            self._hash.configure(updated.smoothingRadius)
        elif name == 'kernelType':
            self._kernel = createKernel(updated.kernelType)

        previous = getattr(self._params, name)
        self._params = updated
        logger.debug('Parameter %s: %r -> %r', name, previous, getattr(updated, name))

    def getParameters(self) -> SimulationParameters:
        '''Copy of the current parameters.'''
        self._checkReady()
        return SimulationParameters(**self._params.toDict())

    def parameterSchema(self) -> list[ParameterSpec]:
        '''Slider ranges for a control panel.'''
        return parameterSchema()

    def spawn(self, position: np.ndarray, velocity: np.ndarray | None = None) -> int | None:
        '''Activate a free slot; None when the store is full.'''
        self._checkReady()
        return self._store.spawn(np.asarray(position, dtype=float), velocity)

    def deactivate(self, index: int) -> None:
        '''Remove a particle from the simulation, keeping its slot.'''
        self._checkReady()
        self._store.deactivate(index)

    def applyForce(
        self,
        position: np.ndarray,
        force: np.ndarray,
        radius: float = 1.0,
    ) -> None:
        '''
        Queue a force field for the next tick.

        Particles within `radius` of `position` receive
        force * (1 - d/radius) during the next advance().
        '''
        self._checkReady()
        if not math.isfinite(radius) or radius <= 0.0:
            raise ConfigurationError(f'Force radius must be positive, got {radius}')
        dim = self._store.dimensions
        center = np.asarray(position, dtype=float)
        force = np.asarray(force, dtype=float)
        if center.shape != (dim,) or force.shape != (dim,):
            raise ConfigurationError(f'Force position and vector must have {dim} components')
        self._pendingForces.append((center, force, float(radius)))

    def getParticleSnapshot(self) -> ParticleSnapshot:
        '''Read-only copy of active particle state.'''
        self._checkReady()
        p = self._store
        indices = p.activeIndices()
        return ParticleSnapshot(
            indices=indices,
            positions=p.positions[indices],
            velocities=p.velocities[indices],
            densities=p.densities[indices],
            pressures=p.pressures[indices],
        )

    def reset(self) -> None:
        '''Return to the seeded configuration without reallocating.'''
        self._checkReady()
        self._store.reset()
        self._hash.clear()
        self._interaction.release()
        self._restartClock()
        self._refreshDerivedFields()
        logger.debug('Fluid reset to seeded configuration')

    def dispose(self) -> None:
        '''Release storage. Any later call raises SimulationDisposedError.'''
        if self._disposed:
            return
        if self._store is not None:
            self._store.dispose()
        if self._hash is not None:
            self._hash.clear()
        self._store = None
        self._hash = None
        self._neighbors = []
        self._pendingForces.clear()
        self._disposed = True
        logger.debug('Fluid solver disposed')

    ######################################################################
    # -- Properties -- #
    ######################################################################

    @property
    def currentState(self) -> SimulationState:
        '''Diagnostics after the last tick.'''
        self._checkReady()
        p = self._store
        densities = p.densities[p.active]
        return SimulationState(
            time=self._time,
            step=self._step,
            dt=self._lastDt,
            nActive=len(densities),
            maxVelocity=p.maxSpeed(),
            maxDensity=float(np.max(densities)) if len(densities) else 0.0,
            meanDensity=float(np.mean(densities)) if len(densities) else 0.0,
            kineticEnergy=p.kineticEnergy(),
            recoveredParticles=self._lastRecovered,
        )

    @property
    def store(self) -> ParticleStore:
        '''The particle store; callers must treat it as read-only.'''
        self._checkReady()
        return self._store

    @property
    def boundary(self) -> BoundaryBox:
        self._checkReady()
        return self._boundary.box

    @property
    def interaction(self) -> InteractionAdapter:
        return self._interaction

    @property
    def stats(self) -> PoolStats:
        self._checkReady()
        return self._store.stats()

    @property
    def time(self) -> float:
        '''Accumulated simulated time [s].'''
        return self._time

    @property
    def stepCount(self) -> int:
        return self._step

    @property
    def totalRecovered(self) -> int:
        '''Non-finite recoveries since initialize() or reset().'''
        return self._totalRecovered

    ######################################################################
    # -- Internal Helpers -- #
    ######################################################################

    def _restartClock(self) -> None:
        self._time = 0.0
        self._step = 0
        self._lastDt = 0.0
        self._lastRecovered = 0
        self._totalRecovered = 0
        self._pendingForces.clear()

    def _refreshDerivedFields(self) -> None:
        # Density and pressure are valid before the first tick
        indices = self._store.activeIndices()
        self._rebuildIndex(indices)
        self._computeDensityPressure(indices)

    def _checkNotDisposed(self) -> None:
        if self._disposed:
            raise SimulationDisposedError('FluidSolver has been disposed')

    def _checkReady(self) -> None:
        self._checkNotDisposed()
        if self._store is None:
            raise FluidSimError('FluidSolver.initialize() has not been called')
