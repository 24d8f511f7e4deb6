# -- FluidSim CLI -- #

from FluidSim.runner import main

main()
