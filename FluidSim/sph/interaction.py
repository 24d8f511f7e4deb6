# -- Pointer Interaction Adapter -- #

'''
Turns an external "pointer is pressed at world position P" signal into
an acceleration field on the particles.

The pointer lives on the z = 0 plane of the renderer, so distances to
it are measured in the x-y plane only. Inside the interaction radius
R a particle at distance d receives

    factor = (1 - d/R) * strength
    a     += (+/-) (dx, dy) / d * factor      (repel / attract)
    a_y   += lift * factor                    (upward splash)

The adapter keeps nothing but the latest pointer state and can be fed
fresh values every frame.

FluidSim [10/19/2026]
'''

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from FluidSim import constants as const
from FluidSim.sph.errors import ConfigurationError
from FluidSim.sph.protocols import SimulationParameters

_MODES = {'repel': 1.0, 'attract': -1.0}


@dataclass(frozen=True)
class InteractionState:
    '''
    Pointer state consumed by the force pass.

    Parameters:
    -----------
    active : bool
        True while the pointer is pressed
    position : np.ndarray
        Pointer position in world units (at least x, y)
    mode : str
        'repel' pushes particles away, 'attract' pulls them in
    strength : float | None
        Overrides SimulationParameters.interactionStrength if set
    radius : float | None
        Overrides SimulationParameters.interactionRadius if set
    '''

    active: bool = False
    position: np.ndarray = field(default_factory=lambda: np.zeros(2))
    mode: str = 'repel'
    strength: float | None = None
    radius: float | None = None

    def __post_init__(self) -> None:
        if self.mode not in _MODES:
            raise ConfigurationError(f'Unknown interaction mode {self.mode!r}')
        if self.radius is not None and (not math.isfinite(self.radius) or self.radius <= 0.0):
            raise ConfigurationError(f'Interaction radius must be positive, got {self.radius}')
        if self.strength is not None and not math.isfinite(self.strength):
            raise ConfigurationError(f'Interaction strength must be finite, got {self.strength}')
        object.__setattr__(self, 'position', np.asarray(self.position, dtype=float))


class InteractionAdapter:
    '''
    Holds the latest pointer state and evaluates its force field.

    Parameters:
    -----------
    lift : float
        Upward push as a fraction of the radial factor
    '''

    def __init__(self, lift: float = const.interactionLift) -> None:
        self._lift = lift
        self._state = InteractionState()

    def update(
        self,
        pointerActive: bool,
        worldPosition: np.ndarray,
        mode: str = 'repel',
    ) -> InteractionState:
        '''Replace the stored pointer state with fresh input.'''
        self._state = InteractionState(
            active=bool(pointerActive),
            position=worldPosition,
            mode=mode,
        )
        return self._state

    def release(self) -> None:
        '''Pointer released; no force until the next press.'''
        self._state = InteractionState(position=self._state.position, mode=self._state.mode)

    @property
    def current(self) -> InteractionState:
        return self._state

    def accelerationFor(
        self,
        positions: np.ndarray,
        parameters: SimulationParameters,
        state: InteractionState | None = None,
    ) -> np.ndarray:
        '''
        Pointer acceleration for each position.

        Parameters:
        -----------
        positions : np.ndarray
            Particle positions, shape (M, dim)
        parameters : SimulationParameters
            Supplies default strength and radius
        state : InteractionState | None
            State to evaluate; the stored state if omitted

        Returns:
        --------
        np.ndarray : Accelerations, shape (M, dim); zeros when inactive
        '''
        if state is None:
            state = self._state
        accel = np.zeros_like(positions)
        if not state.active or len(positions) == 0:
            return accel

        strength = parameters.interactionStrength if state.strength is None else state.strength
        radius = parameters.interactionRadius if state.radius is None else state.radius

        # Planar distance to the pointer
        delta = positions[:, :2] - state.position[:2]
        dist = np.sqrt(np.einsum('ij,ij->i', delta, delta))

        inside = (dist < radius) & (dist > const.minPairDistance)
        if not np.any(inside):
            return accel

        d = dist[inside]
        factor = (1.0 - d / radius) * strength
        accel[inside, :2] = _MODES[state.mode] * delta[inside] / d[:, np.newaxis] * factor[:, np.newaxis]
        accel[inside, 1] += self._lift * factor
        return accel


def applyForce(
    positions: np.ndarray,
    center: np.ndarray,
    force: np.ndarray,
    radius: float = 1.0,
) -> np.ndarray:
    '''
    Uniform force with linear falloff around a point.

    Particles closer than `radius` to `center` (full distance, all
    axes) receive `force * (1 - d/radius)`.

    Returns:
    --------
    np.ndarray : Accelerations, shape (M, dim)
    '''
    if not math.isfinite(radius) or radius <= 0.0:
        raise ConfigurationError(f'Force radius must be positive, got {radius}')

    delta = positions - np.asarray(center, dtype=float)
    dist = np.sqrt(np.einsum('ij,ij->i', delta, delta))
    inside = (dist < radius) & (dist > const.minPairDistance)

    accel = np.zeros_like(positions)
    accel[inside] = np.asarray(force, dtype=float) * (1.0 - dist[inside] / radius)[:, np.newaxis]
    return accel
