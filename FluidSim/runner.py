# -- Fluid Simulation Runner -- #

'''
Command-line driver for running the particle fluid headless.

Plays the role of the render loop: calls advance() at a fixed frame
rate, optionally stirs the fluid with a scripted pointer, prints
progress, and exports frame data for offline viewing.

Usage:
    python -m FluidSim                                  # Small 2D block drop
    python -m FluidSim --preset standard --stir         # Larger run with stirring
    python -m FluidSim --config configs/fluid_default.json
    python -m FluidSim --no-export                      # Skip frame export
    python -m FluidSim --plot                           # Also write an HTML dashboard

FluidSim [10/19/2026]
'''

from __future__ import annotations

import argparse
import json
import logging
import math
import os
import time as timeModule
from dataclasses import dataclass, field

import numpy as np

from FluidSim import constants as const
from FluidSim.export.frameExporter import FrameExporter
from FluidSim.scenarios.particleBlock import BlockLayoutConfig
from FluidSim.sph.errors import ConfigurationError
from FluidSim.sph.fluidSolver import FluidSolver
from FluidSim.sph.interaction import InteractionState
from FluidSim.sph.protocols import BoundaryBox, SimulationParameters
from FluidSim.visualization.runDashboard import createRunDashboard


#--------------------------------------------------------------------#
# -- CLI Argument Parser -- #
#--------------------------------------------------------------------#

def buildParser() -> argparse.ArgumentParser:
    '''Build the CLI argument parser.'''
    parser = argparse.ArgumentParser(
        description='FluidSim -- interactive particle fluid, headless run',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        '--config', type=str, default=None,
        help='Path to JSON configuration file',
    )
    parser.add_argument(
        '--preset', type=str, default='small',
        choices=['small', 'standard', 'small3D'],
        help='Run preset (default: small)',
    )
    parser.add_argument(
        '--capacity', type=int, default=None,
        help='Override particle capacity',
    )
    parser.add_argument(
        '--frames', type=int, default=None,
        help='Override number of frames to simulate',
    )
    parser.add_argument(
        '--fps', type=float, default=None,
        help='Override frame rate driving advance()',
    )
    parser.add_argument(
        '--dimensions', type=int, default=None, choices=[2, 3],
        help='Override spatial dimensions',
    )
    parser.add_argument(
        '--seed', type=int, default=None,
        help='Override layout random seed',
    )
    parser.add_argument(
        '--stir', action='store_true',
        help='Stir the fluid with a circling pointer',
    )
    parser.add_argument(
        '--no-export', action='store_true',
        help='Skip frame data export',
    )
    parser.add_argument(
        '--plot', action='store_true',
        help='Write an HTML diagnostics dashboard to the output directory',
    )
    parser.add_argument(
        '--output-dir', type=str, default='FluidSim/output',
        help='Output directory for exported frames (default: FluidSim/output)',
    )
    parser.add_argument(
        '-v', '--verbose', action='store_true',
        help='Enable debug logging',
    )

    return parser


#--------------------------------------------------------------------#
# -- Run Configuration -- #
#--------------------------------------------------------------------#

@dataclass
class RunConfig:
    '''
    Settings for one headless run.

    Parameters:
    -----------
    capacity : int
        Particle capacity (all slots seeded)
    dimensions : int
        2 or 3
    halfSize : float
        Container spans [-halfSize, +halfSize] on every axis
    frames : int
        Number of advance() calls
    fps : float
        Frame rate; dt = 1 / fps
    seed : int
        Layout random seed
    stir : bool
        Drive a circling pointer during the middle third of the run
    outputInterval : int
        Record every N-th frame for export
    parameters : SimulationParameters
        Fluid parameters
    layout : BlockLayoutConfig
        Seeded block layout
    '''

    capacity: int = const.defaultCapacity
    dimensions: int = 2
    halfSize: float = const.containerHalfSize
    frames: int = 180
    fps: float = 60.0
    seed: int = 0
    stir: bool = False
    outputInterval: int = 2
    parameters: SimulationParameters = field(default_factory=SimulationParameters)
    layout: BlockLayoutConfig = field(default_factory=BlockLayoutConfig)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        '''Reject settings the frame loop cannot run with.'''
        if self.dimensions not in (2, 3):
            raise ConfigurationError(f'dimensions must be 2 or 3, got {self.dimensions}')
        if not math.isfinite(self.fps) or self.fps <= 0.0:
            raise ConfigurationError(f'fps must be positive, got {self.fps}')
        if self.frames < 0:
            raise ConfigurationError(f'frames must be >= 0, got {self.frames}')
        if self.outputInterval < 1:
            raise ConfigurationError(f'outputInterval must be >= 1, got {self.outputInterval}')

    @classmethod
    def small(cls) -> RunConfig:
        '''Quick 2D run, 200 particles for 3 seconds.'''
        return cls(capacity=200, frames=180)

    @classmethod
    def standard(cls) -> RunConfig:
        '''500 particles for 10 seconds with stirring.'''
        return cls(capacity=500, frames=600, stir=True, layout=BlockLayoutConfig.splash())

    @classmethod
    def small3D(cls) -> RunConfig:
        '''3D box, 216 particles for 3 seconds.'''
        return cls(capacity=216, dimensions=3, frames=180)

    @classmethod
    def fromJson(cls, configPath: str) -> RunConfig:
        '''
        Load a run configuration from JSON.

        Reads 'run' (capacity, dimensions, halfSize, frames, fps,
        seed, stir, outputInterval), 'layout', plus the 'fluid' and
        'simulation' parameter sections.
        '''
        with open(configPath, 'r') as f:
            data = json.load(f)

        runSection = data.get('run', {})
        layoutSection = data.get('layout', {})
        return cls(
            capacity=runSection.get('capacity', const.defaultCapacity),
            dimensions=runSection.get('dimensions', 2),
            halfSize=runSection.get('halfSize', const.containerHalfSize),
            frames=runSection.get('frames', 180),
            fps=runSection.get('fps', 60.0),
            seed=runSection.get('seed', 0),
            stir=runSection.get('stir', False),
            outputInterval=runSection.get('outputInterval', 2),
            parameters=SimulationParameters.fromJson(configPath),
            layout=BlockLayoutConfig(**layoutSection),
        )


#--------------------------------------------------------------------#
# -- Runner Class -- #
#--------------------------------------------------------------------#

class FluidSimRunner:
    '''
    Runs the fluid for a fixed number of frames and records output.
    '''

    def __init__(self) -> None:
        self._exporter = FrameExporter()

    @property
    def exporter(self) -> FrameExporter:
        return self._exporter

    def run(
        self,
        runConfig: RunConfig,
        doExport: bool = True,
        exportDir: str = 'FluidSim/output',
        doPlot: bool = False,
    ) -> dict:
        '''
        Run a headless simulation.

        Parameters:
        -----------
        runConfig : RunConfig
            Run settings
        doExport : bool
            Whether to write frame data to disk
        exportDir : str
            Output directory for frame export
        doPlot : bool
            Whether to write the HTML diagnostics dashboard

        Returns:
        --------
        dict : Run summary
        '''
        runConfig.validate()
        self._exporter = FrameExporter()

        print()
        print('=' * 62)
        print('  FLUIDSIM -- PARTICLE FLUID RUN')
        print('=' * 62)
        print()

        #--------------------------------------------------------------------#
        # Setup
        #--------------------------------------------------------------------#
        boundary = BoundaryBox.centered(runConfig.halfSize, runConfig.dimensions)
        params = runConfig.parameters

        solver = FluidSolver()
        solver.initialize(
            capacity=runConfig.capacity,
            boundary=boundary,
            parameters=params,
            seed=runConfig.seed,
            layout=runConfig.layout,
            inset=const.particleRadius,
        )

        print('-' * 62)
        print('  SETUP')
        print('-' * 62)
        print(f'  Dimensions:        {runConfig.dimensions:8d}')
        print(f'  Container:         [{-runConfig.halfSize:.2f}, {runConfig.halfSize:.2f}]')
        print(f'  Particles:         {solver.stats.active:8d}')
        print(f'  Smoothing Radius:  {params.smoothingRadius:8.3f}')
        print(f'  Kernel:            {params.kernelType:>8s}')
        print(f'  Frames:            {runConfig.frames:8d}')
        print(f'  Frame Rate:        {runConfig.fps:8.1f} fps')
        print(f'  Stirring:          {"yes" if runConfig.stir else "no":>8s}')
        print()

        self._exporter.addFrame(solver.currentState, solver.getParticleSnapshot())

        #--------------------------------------------------------------------#
        # Frame Loop
        #--------------------------------------------------------------------#
        print('-' * 62)
        print('  RUNNING')
        print('-' * 62)
        print()
        print(f'  {"Time":>8}  {"Frame":>8}  {"MaxVel":>8}  {"MaxRho":>8}  {"MeanRho":>8}  {"KE":>10}')
        print('  ' + '-' * 58)

        dt = 1.0 / runConfig.fps
        printEvery = max(1, runConfig.frames // 20)
        frameTimes: list[float] = []

        for frame in range(1, runConfig.frames + 1):
            interaction = self._scriptedPointer(runConfig, boundary, frame)

            tickStart = timeModule.perf_counter()
            solver.advance(dt, interaction)
            frameTimes.append(timeModule.perf_counter() - tickStart)

            state = solver.currentState
            if frame % runConfig.outputInterval == 0:
                self._exporter.addFrame(state, solver.getParticleSnapshot())

            if frame % printEvery == 0 or frame == runConfig.frames:
                print(
                    f'  {state.time:8.3f}  {state.step:8d}  {state.maxVelocity:8.3f}  '
                    f'{state.maxDensity:8.3f}  {state.meanDensity:8.3f}  '
                    f'{state.kineticEnergy:10.3f}'
                )

        finalState = solver.currentState
        meanTickMs = 1000.0 * float(np.mean(frameTimes)) if frameTimes else 0.0
        worstTickMs = 1000.0 * float(np.max(frameTimes)) if frameTimes else 0.0

        print()
        print('  Run complete.')
        print(f'  Mean tick:         {meanTickMs:8.2f} ms')
        print(f'  Worst tick:        {worstTickMs:8.2f} ms')
        print(f'  Frames recorded:   {self._exporter.nFrames:8d}')
        print()

        #--------------------------------------------------------------------#
        # Export
        #--------------------------------------------------------------------#
        exportPath = None
        if doExport:
            print('-' * 62)
            print('  EXPORTING FRAME DATA')
            print('-' * 62)

            exportPath = self._exporter.export(
                parameters=solver.getParameters(),
                boundary=boundary,
                outputDir=exportDir,
                scenarioName=f'block{runConfig.dimensions}D',
            )
            print(f'  Exported to: {exportPath}')
            print()

        plotPath = None
        if doPlot:
            os.makedirs(exportDir, exist_ok=True)
            plotPath = os.path.join(exportDir, f'fluidSim_block{runConfig.dimensions}D_dashboard.html')
            fig = createRunDashboard(self._exporter.toDict(solver.getParameters(), boundary))
            fig.write_html(plotPath)
            print(f'  Dashboard:   {plotPath}')
            print()

        #--------------------------------------------------------------------#
        # Summary
        #--------------------------------------------------------------------#
        print('=' * 62)
        print('  RUN SUMMARY')
        print('=' * 62)
        print(f'  Final KE:          {finalState.kineticEnergy:10.4f}')
        print(f'  Max Velocity:      {finalState.maxVelocity:10.4f}')
        print(f'  Max Density:       {finalState.maxDensity:10.4f}')
        print(f'  Recovered:         {solver.totalRecovered:10d}')
        print('=' * 62)
        print()

        solver.dispose()

        return {
            'finalState': finalState,
            'meanTickMs': meanTickMs,
            'worstTickMs': worstTickMs,
            'nFrames': self._exporter.nFrames,
            'exportPath': exportPath,
            'plotPath': plotPath,
        }

    def runFromConfig(
        self,
        configPath: str,
        doExport: bool = True,
        exportDir: str = 'FluidSim/output',
        doPlot: bool = False,
    ) -> dict:
        '''Run with settings loaded from a JSON file.'''
        return self.run(RunConfig.fromJson(configPath), doExport=doExport, exportDir=exportDir, doPlot=doPlot)

    @staticmethod
    def _scriptedPointer(runConfig: RunConfig, boundary: BoundaryBox, frame: int) -> InteractionState | None:
        '''Pointer circling the lower half of the box during the middle third.'''
        if not runConfig.stir:
            return None

        start = runConfig.frames // 3
        stop = 2 * runConfig.frames // 3
        if not start <= frame < stop:
            return InteractionState(active=False)

        angle = 2.0 * math.pi * (frame - start) / runConfig.fps
        radius = 0.4 * boundary.size[0] * 0.5
        center = boundary.center
        position = np.array([
            center[0] + radius * math.cos(angle),
            boundary.boundaryMin[1] + 0.25 * boundary.size[1] + 0.5 * radius * math.sin(angle),
        ])
        return InteractionState(active=True, position=position)


#--------------------------------------------------------------------#
# -- CLI Entry Point -- #
#--------------------------------------------------------------------#

def main(argv: list[str] | None = None) -> dict:
    '''CLI entry point.'''
    parser = buildParser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    if args.config:
        runConfig = RunConfig.fromJson(args.config)
    else:
        presets = {
            'small': RunConfig.small,
            'standard': RunConfig.standard,
            'small3D': RunConfig.small3D,
        }
        runConfig = presets[args.preset]()

    if args.capacity is not None:
        runConfig.capacity = args.capacity
    if args.frames is not None:
        runConfig.frames = args.frames
    if args.fps is not None:
        runConfig.fps = args.fps
    if args.seed is not None:
        runConfig.seed = args.seed
    if args.dimensions is not None:
        runConfig.dimensions = args.dimensions
    if args.stir:
        runConfig.stir = True

    runner = FluidSimRunner()
    return runner.run(
        runConfig,
        doExport=not args.no_export,
        exportDir=args.output_dir,
        doPlot=args.plot,
    )


if __name__ == '__main__':
    main()
