# -- Simplified Falloff Kernels -- #

'''
Distance weighting functions for the SPH-like density and forces.

These are deliberately simpler than the normalized poly6 / spiky /
cubic spline kernels of physical SPH: the weight is 1 at zero
distance and falls to 0 at the smoothing radius, with no
normalization constant. Density therefore reads as a weighted
neighbor count rather than a mass density. The default stiffness
and rest density are calibrated to this scale.

W_linear(r, h)    = max(0, 1 - r/h)
W_quadratic(r, h) = max(0, 1 - r/h)^2

FluidSim [10/19/2026]
'''

from __future__ import annotations

from typing import Protocol

import numpy as np

from FluidSim.sph.errors import ConfigurationError


######################################################################
# -- Kernel Protocol -- #
######################################################################

class SphKernel(Protocol):
    '''Protocol for falloff weight functions.'''

    name: str

    def evaluate(self, r: float, h: float) -> float:
        '''
        Weight for a single distance.

        Parameters:
        -----------
        r : float
            Distance between particles
        h : float
            Smoothing radius

        Returns:
        --------
        float : Weight in [0, 1]
        '''
        ...

    def evaluateBatch(self, r: np.ndarray, h: float) -> np.ndarray:
        '''Vectorized evaluate() over an array of distances.'''
        ...


######################################################################
# -- Linear Falloff -- #
######################################################################

class LinearFalloffKernel:
    '''
    Linear falloff: full weight at the center, zero at h.

    Default weighting for density and forces.
    '''

    name = 'linear'

    def evaluate(self, r: float, h: float) -> float:
        q = r / h
        if q >= 1.0:
            return 0.0
        return 1.0 - q

    def evaluateBatch(self, r: np.ndarray, h: float) -> np.ndarray:
        return np.clip(1.0 - r / h, 0.0, None)


######################################################################
# -- Quadratic Falloff -- #
######################################################################

class QuadraticFalloffKernel:
    '''
    Quadratic falloff: (1 - r/h)^2.

    Softer than the linear kernel near the edge of the support, which
    damps the jitter of particles hovering around distance h.
    '''

    name = 'quadratic'

    def evaluate(self, r: float, h: float) -> float:
        q = r / h
        if q >= 1.0:
            return 0.0
        return (1.0 - q) ** 2

    def evaluateBatch(self, r: np.ndarray, h: float) -> np.ndarray:
        w = np.clip(1.0 - r / h, 0.0, None)
        return w * w


######################################################################
# -- Factory -- #
######################################################################

_KERNELS = {
    'linear': LinearFalloffKernel,
    'quadratic': QuadraticFalloffKernel,
}


def kernelNames() -> list[str]:
    '''Names accepted by createKernel().'''
    return sorted(_KERNELS)


def createKernel(kernelType: str = 'linear') -> SphKernel:
    '''
    Create a kernel by name.

    Parameters:
    -----------
    kernelType : str
        'linear' or 'quadratic'

    Returns:
    --------
    SphKernel : Kernel instance
    '''
    try:
        return _KERNELS[kernelType]()
    except KeyError:
        raise ConfigurationError(
            f'Unknown kernel type {kernelType!r}; expected one of {kernelNames()}'
        ) from None
