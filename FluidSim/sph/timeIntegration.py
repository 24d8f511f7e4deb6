# -- Time Integration -- #

'''
Semi-implicit (symplectic) Euler integration for the particle fluid.

Update sequence per tick:
    v(t+dt) = v(t) + a(t) * dt       (kick)
    |v| <= maxVelocity               (speed cap)
    x(t+dt) = x(t) + v(t+dt) * dt    (drift)

The drift uses the updated velocity, which keeps the scheme stable at
the large interactive time steps used here where explicit Euler would
gain energy. Accuracy is first order; that is an accepted trade-off
against proper SPH integrators.

Also provides the non-finite recovery used after integration: a
particle whose state blew up to NaN or infinity is put back at a safe
position with zero velocity instead of being passed to the renderer.

References:
-----------
Hairer et al. (2003) -- Geometric Numerical Integration

FluidSim [10/19/2026]
'''

from __future__ import annotations

from typing import Protocol

import numpy as np

from FluidSim.sph.particles import ParticleStore


######################################################################
# -- Time Integrator Protocol -- #
######################################################################

class TimeIntegrator(Protocol):
    '''Protocol for time integration schemes.'''

    def integrate(
        self,
        particles: ParticleStore,
        indices: np.ndarray,
        dt: float,
        maxVelocity: float,
    ) -> None:
        '''Advance the given particles by one time step.'''
        ...


######################################################################
# -- Symplectic Euler Integrator -- #
######################################################################

class SymplecticEuler:
    '''Kick-drift integrator with a speed cap between the two halves.'''

    def integrate(
        self,
        particles: ParticleStore,
        indices: np.ndarray,
        dt: float,
        maxVelocity: float,
    ) -> None:
        '''
        Advance the given particles by one time step.

        Parameters:
        -----------
        particles : ParticleStore
            Store to advance in place
        indices : np.ndarray
            Active slot indices
        dt : float
            Time step [s]
        maxVelocity : float
            Speed cap applied after the kick
        '''
        if len(indices) == 0:
            return

        # Kick
        velocities = particles.velocities[indices] + particles.accelerations[indices] * dt

        # Cap speed; non-finite speeds are left for recoverNonFinite
        speeds = np.linalg.norm(velocities, axis=1)
        tooFast = np.isfinite(speeds) & (speeds > maxVelocity)
        if np.any(tooFast):
            velocities[tooFast] *= (maxVelocity / speeds[tooFast])[:, np.newaxis]

        # Drift with the updated velocity
        particles.velocities[indices] = velocities
        particles.positions[indices] += velocities * dt


######################################################################
# -- Non-finite Recovery -- #
######################################################################

def recoverNonFinite(
    particles: ParticleStore,
    indices: np.ndarray,
    fallbackPosition: np.ndarray,
) -> np.ndarray:
    '''
    Reset particles whose position or velocity is NaN or infinite.

    Parameters:
    -----------
    particles : ParticleStore
        Store to repair in place
    indices : np.ndarray
        Active slot indices to check
    fallbackPosition : np.ndarray
        Position given to each repaired particle, shape (dim,)

    Returns:
    --------
    np.ndarray : Slot indices that were repaired
    '''
    if len(indices) == 0:
        return indices

    finite = (
        np.all(np.isfinite(particles.positions[indices]), axis=1)
        & np.all(np.isfinite(particles.velocities[indices]), axis=1)
    )
    bad = indices[~finite]
    if len(bad) == 0:
        return bad

    particles.positions[bad] = fallbackPosition
    particles.velocities[bad] = 0.0
    particles.accelerations[bad] = 0.0
    return bad
