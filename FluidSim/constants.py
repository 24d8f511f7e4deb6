# -- Default Constants for the Particle Fluid Core -- #

'''
Default numeric constants for the simplified SPH-like fluid.

Values are in arbitrary world units chosen for an interactive
container a few units across. They are tuned for visual behavior
at 30-60 fps, not for physical accuracy.

References:
-----------
Muller et al. (2003) -- Particle-based fluid simulation for
    interactive applications
Clavet et al. (2005) -- Particle-based viscoelastic fluid simulation

FluidSim [10/19/2026]
'''

#--------------------------------------------------------------------#
# -- Fluid Behavior -- #
#--------------------------------------------------------------------#

# Downward gravitational acceleration [units/s^2]
gravity: float = 9.8

# Velocity-blending strength between neighbors (0 disables viscosity)
viscosity: float = 0.1

# Equilibrium density; pressure is zero at or below this value
restDensity: float = 1.0

# Equation-of-state multiplier: pressure = stiffness * (rho - rho_0)
stiffness: float = 50.0

# Scale from averaged pair pressure to acceleration
pressureScale: float = 0.1

# Fraction of normal velocity kept after a wall bounce
boundaryDamping: float = 0.6

#--------------------------------------------------------------------#
# -- Neighborhood and Kernel -- #
#--------------------------------------------------------------------#

# Smoothing radius h [units]; also the spatial hash cell size
smoothingRadius: float = 0.4

# Falloff kernel used for density and force weighting
kernelType: str = 'linear'

# Lower bound on computed density (guards divisions downstream)
densityEpsilon: float = 1e-6

# Pairs closer than this are skipped in the force pass
minPairDistance: float = 1e-4

#--------------------------------------------------------------------#
# -- Pointer Interaction -- #
#--------------------------------------------------------------------#

# Peak acceleration applied at the pointer [units/s^2]
interactionStrength: float = 8.0

# Radius of the pointer's influence [units]
interactionRadius: float = 1.0

# Extra upward push as a fraction of the radial factor
interactionLift: float = 0.5

#--------------------------------------------------------------------#
# -- Time Stepping -- #
#--------------------------------------------------------------------#

# Largest time step accepted per tick [s] (~30 fps floor)
maxTimeStep: float = 0.033

# Speed cap applied after the velocity kick [units/s]
maxVelocity: float = 10.0

#--------------------------------------------------------------------#
# -- Container and Layout -- #
#--------------------------------------------------------------------#

# Default container half-extent; the box spans [-size, +size]
containerHalfSize: float = 2.0

# Default particle capacity
defaultCapacity: int = 200

# Visual particle radius used by renderers and to inset the walls
particleRadius: float = 0.08
