# -- Fluid Simulation Protocols -- #

'''
Configuration and result dataclasses for the particle fluid core.

Defines the runtime parameter set (SimulationParameters), the
container geometry (BoundaryBox), per-tick diagnostics
(SimulationState), the read-only view handed to renderers
(ParticleSnapshot), and the solver protocol.

FluidSim [10/19/2026]
'''

from __future__ import annotations

import dataclasses
import json
import math
from dataclasses import dataclass
from typing import Protocol, TYPE_CHECKING

import numpy as np

from FluidSim import constants as const
from FluidSim.sph.errors import ConfigurationError, ParameterError
from FluidSim.sph.kernels import kernelNames

if TYPE_CHECKING:
    from FluidSim.sph.interaction import InteractionState


######################################################################
# -- Parameter Ranges -- #
######################################################################

# name -> (lower bound, lower bound inclusive, exclusive upper bound or None)
_NUMERIC_RANGES: dict[str, tuple[float, bool, float | None]] = {
    'gravity': (0.0, True, None),
    'viscosity': (0.0, True, None),
    'restDensity': (0.0, True, None),
    'stiffness': (0.0, True, None),
    'pressureScale': (0.0, True, None),
    'boundaryDamping': (0.0, True, 1.0),
    'interactionStrength': (0.0, True, None),
    'interactionRadius': (0.0, False, None),
    'smoothingRadius': (0.0, False, None),
    'maxTimeStep': (0.0, False, None),
    'maxVelocity': (0.0, False, None),
}


@dataclass(frozen=True)
class ParameterSpec:
    '''
    Slider description for one tunable parameter.

    Parameters:
    -----------
    key : str
        SimulationParameters field name
    label : str
        Human-readable label
    minimum : float
        Slider lower end
    maximum : float
        Slider upper end
    step : float
        Slider increment
    default : float
        Default value
    '''

    key: str
    label: str
    minimum: float
    maximum: float
    step: float
    default: float


######################################################################
# -- Simulation Parameters -- #
######################################################################

@dataclass
class SimulationParameters:
    '''
    Tunable parameters of the fluid, mutable between ticks.

    Parameters:
    -----------
    gravity : float
        Downward acceleration magnitude [units/s^2]
    viscosity : float
        Neighbor velocity-blending coefficient (0 disables it)
    restDensity : float
        Density at which pressure becomes positive
    stiffness : float
        Equation-of-state multiplier
    pressureScale : float
        Scale from averaged pair pressure to acceleration
    boundaryDamping : float
        Fraction of normal velocity kept on a wall bounce, in [0, 1)
    interactionStrength : float
        Peak pointer acceleration
    interactionRadius : float
        Pointer influence radius
    smoothingRadius : float
        Neighborhood radius h; also the spatial hash cell size
    maxTimeStep : float
        Upper clamp on the per-tick dt [s]
    maxVelocity : float
        Speed cap after the velocity kick
    kernelType : str
        'linear' or 'quadratic'
    '''

    gravity: float = const.gravity
    viscosity: float = const.viscosity
    restDensity: float = const.restDensity
    stiffness: float = const.stiffness
    pressureScale: float = const.pressureScale
    boundaryDamping: float = const.boundaryDamping
    interactionStrength: float = const.interactionStrength
    interactionRadius: float = const.interactionRadius
    smoothingRadius: float = const.smoothingRadius
    maxTimeStep: float = const.maxTimeStep
    maxVelocity: float = const.maxVelocity
    kernelType: str = const.kernelType

    def __post_init__(self) -> None:
        self.validate()

    @classmethod
    def fieldNames(cls) -> list[str]:
        '''Names of all parameters.'''
        return [f.name for f in dataclasses.fields(cls)]

    @staticmethod
    def checkValue(name: str, value: object) -> object:
        '''
        Validate one parameter value and return it in canonical form.

        Raises:
        -------
        ParameterError : Unknown name or out-of-range value
        '''
        if name == 'kernelType':
            if value not in kernelNames():
                raise ParameterError(name, value, f'expected one of {kernelNames()}')
            return value

        if name not in _NUMERIC_RANGES:
            raise ParameterError(name, value, 'unknown parameter')
        if isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
            raise ParameterError(name, value, 'must be a number')

        number = float(value)
        if not math.isfinite(number):
            raise ParameterError(name, value, 'must be finite')

        lower, inclusive, upper = _NUMERIC_RANGES[name]
        if number < lower or (not inclusive and number == lower):
            relation = '>=' if inclusive else '>'
            raise ParameterError(name, value, f'must be {relation} {lower}')
        if upper is not None and number >= upper:
            raise ParameterError(name, value, f'must be < {upper}')
        return number

    def validate(self) -> None:
        '''Check every field, raising ParameterError on the first bad one.'''
        for name in self.fieldNames():
            setattr(self, name, self.checkValue(name, getattr(self, name)))

    def withValue(self, name: str, value: object) -> SimulationParameters:
        '''Copy of these parameters with one field replaced after validation.'''
        checked = self.checkValue(name, value)
        return dataclasses.replace(self, **{name: checked})

    def toDict(self) -> dict:
        return dataclasses.asdict(self)

    @classmethod
    def fromDict(cls, data: dict) -> SimulationParameters:
        '''
        Build parameters from a flat mapping, ignoring unknown keys.

        Missing keys keep their defaults.
        '''
        known = set(cls.fieldNames())
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def fromJson(cls, configPath: str) -> SimulationParameters:
        '''
        Load parameters from a JSON configuration file.

        Reads the 'fluid' and 'simulation' sections; keys from both
        are merged, with 'simulation' taking precedence.

        Parameters:
        -----------
        configPath : str
            Path to the JSON configuration file

        Returns:
        --------
        SimulationParameters : Loaded parameters
        '''
        with open(configPath, 'r') as f:
            data = json.load(f)

        merged = dict(data.get('fluid', {}))
        merged.update(data.get('simulation', {}))
        return cls.fromDict(merged)


def parameterSchema() -> list[ParameterSpec]:
    '''
    Slider ranges for a control panel.

    These are UI ranges; the hard validity limits enforced by
    setParameter are wider (see SimulationParameters.checkValue).
    '''
    defaults = SimulationParameters()
    return [
        ParameterSpec('gravity', 'Gravity', 0.0, 20.0, 1.0, defaults.gravity),
        ParameterSpec('viscosity', 'Viscosity', 0.0, 1.0, 0.05, defaults.viscosity),
        ParameterSpec('restDensity', 'Rest Density', 0.1, 5.0, 0.1, defaults.restDensity),
        ParameterSpec('stiffness', 'Pressure Stiffness', 0.0, 200.0, 5.0, defaults.stiffness),
        ParameterSpec('boundaryDamping', 'Boundary Damping', 0.1, 0.9, 0.1, defaults.boundaryDamping),
        ParameterSpec('interactionStrength', 'Stir Strength', 0.0, 30.0, 1.0, defaults.interactionStrength),
        ParameterSpec('interactionRadius', 'Stir Radius', 0.1, 3.0, 0.1, defaults.interactionRadius),
    ]


######################################################################
# -- Boundary Box -- #
######################################################################

@dataclass
class BoundaryBox:
    '''
    Axis-aligned container every active particle is kept inside.

    Parameters:
    -----------
    boundaryMin : np.ndarray
        Lower corner, shape (dim,)
    boundaryMax : np.ndarray
        Upper corner, shape (dim,)
    '''

    boundaryMin: np.ndarray
    boundaryMax: np.ndarray

    def __post_init__(self) -> None:
        self.boundaryMin = np.asarray(self.boundaryMin, dtype=float).copy()
        self.boundaryMax = np.asarray(self.boundaryMax, dtype=float).copy()

        if self.boundaryMin.shape != self.boundaryMax.shape or self.boundaryMin.ndim != 1:
            raise ConfigurationError('Boundary corners must be 1-D vectors of equal length')
        if len(self.boundaryMin) not in (2, 3):
            raise ConfigurationError(f'Boundary must be 2-D or 3-D, got {len(self.boundaryMin)}-D')
        if not (np.all(np.isfinite(self.boundaryMin)) and np.all(np.isfinite(self.boundaryMax))):
            raise ConfigurationError('Boundary corners must be finite')
        if np.any(self.boundaryMin >= self.boundaryMax):
            raise ConfigurationError(
                f'Boundary min {self.boundaryMin.tolist()} must be below '
                f'max {self.boundaryMax.tolist()} on every axis'
            )

    @classmethod
    def centered(cls, halfSize: float = const.containerHalfSize, dimensions: int = 2) -> BoundaryBox:
        '''Cube (square) spanning [-halfSize, +halfSize] on every axis.'''
        return cls(np.full(dimensions, -halfSize), np.full(dimensions, halfSize))

    @property
    def dimensions(self) -> int:
        return len(self.boundaryMin)

    @property
    def size(self) -> np.ndarray:
        '''Extent along each axis.'''
        return self.boundaryMax - self.boundaryMin

    @property
    def center(self) -> np.ndarray:
        return 0.5 * (self.boundaryMin + self.boundaryMax)

    def contains(self, positions: np.ndarray) -> np.ndarray:
        '''Per-row mask of positions inside the box (bounds inclusive).'''
        positions = np.atleast_2d(positions)
        return np.all((positions >= self.boundaryMin) & (positions <= self.boundaryMax), axis=1)

    def toDict(self) -> dict:
        return {'min': self.boundaryMin.tolist(), 'max': self.boundaryMax.tolist()}


######################################################################
# -- Simulation State -- #
######################################################################

@dataclass
class SimulationState:
    '''
    Scalar diagnostics after a tick.

    Parameters:
    -----------
    time : float
        Accumulated simulated time [s]
    step : int
        Number of completed ticks
    dt : float
        Clamped time step of the last tick [s]
    nActive : int
        Active particle count
    maxVelocity : float
        Largest particle speed
    maxDensity : float
        Largest particle density
    meanDensity : float
        Mean particle density
    kineticEnergy : float
        Total kinetic energy (unit mass)
    recoveredParticles : int
        Particles reset after going non-finite during the last tick
    '''

    time: float
    step: int
    dt: float
    nActive: int
    maxVelocity: float
    maxDensity: float
    meanDensity: float
    kineticEnergy: float
    recoveredParticles: int = 0


######################################################################
# -- Particle Snapshot -- #
######################################################################

@dataclass(frozen=True)
class ParticleSnapshot:
    '''
    Read-only copy of active particle data for rendering.

    All arrays are copies with the writeable flag cleared, so a
    snapshot stays valid after later ticks.

    Parameters:
    -----------
    indices : np.ndarray
        Slot index of each row, shape (M,)
    positions : np.ndarray
        Positions, shape (M, dim)
    velocities : np.ndarray
        Velocities, shape (M, dim)
    densities : np.ndarray
        Densities, shape (M,)
    pressures : np.ndarray
        Pressures, shape (M,)
    '''

    indices: np.ndarray
    positions: np.ndarray
    velocities: np.ndarray
    densities: np.ndarray
    pressures: np.ndarray

    def __post_init__(self) -> None:
        for f in dataclasses.fields(self):
            getattr(self, f.name).setflags(write=False)

    @property
    def count(self) -> int:
        return len(self.indices)

    def speeds(self) -> np.ndarray:
        '''Velocity magnitudes, for color mapping.'''
        return np.linalg.norm(self.velocities, axis=1)


######################################################################
# -- Solver Protocol -- #
######################################################################

class FluidSolverProtocol(Protocol):
    '''Call surface consumed by a rendering / demo lifecycle layer.'''

    def advance(self, dt: float, interaction: InteractionState | None = None) -> None:
        '''Run one tick.'''
        ...

    def getParticleSnapshot(self) -> ParticleSnapshot:
        '''Read-only view of active particles.'''
        ...

    def setParameter(self, name: str, value: object) -> None:
        '''Change one parameter, effective from the next tick.'''
        ...

    def reset(self) -> None:
        '''Return to the seeded configuration.'''
        ...

    def dispose(self) -> None:
        '''Release storage.'''
        ...
