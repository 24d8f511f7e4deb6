# -- Fluid Core Exceptions -- #

'''
Exception types raised by the particle fluid core.

Configuration problems are raised synchronously where they are
detected. Running out of particle slots is not an exception:
ParticleStore.spawn returns None instead.

FluidSim [10/19/2026]
'''


class FluidSimError(Exception):
    '''Base class for all fluid core errors.'''


class ConfigurationError(FluidSimError, ValueError):
    '''Invalid capacity, cell size, boundary, time step, or kernel.'''


class ParameterError(ConfigurationError):
    '''
    A runtime parameter change was rejected.

    The previous value of the parameter is left in place.
    '''

    def __init__(self, name: str, value: object, reason: str) -> None:
        super().__init__(f'Cannot set {name!r} to {value!r}: {reason}')
        self.name = name
        self.value = value
        self.reason = reason


class SimulationDisposedError(FluidSimError, RuntimeError):
    '''The solver or store was used after dispose().'''
