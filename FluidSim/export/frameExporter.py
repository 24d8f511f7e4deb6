# -- Fluid Frame Exporter -- #

'''
Exports fluid simulation frames as JSON for offline viewers.

Collects particle snapshots during a run and writes them to a single
JSON file together with the parameters, container geometry, and a
per-frame diagnostics history.

Output JSON format:
{
    "meta": { "type": "fluidSim", "dimensions": 2, "created": "...", ... },
    "parameters": { "gravity": 9.8, ... },
    "boundary": { "min": [...], "max": [...] },
    "frames": [
        {
            "time": 0.0,
            "indices": [0, 1, ...],
            "positions": [[x0, y0], [x1, y1], ...],
            "speeds": [s0, s1, ...],
            "densities": [rho0, rho1, ...]
        },
        ...
    ],
    "history": {
        "times": [...], "kinetic": [...], "maxDensity": [...], "recovered": [...]
    }
}

FluidSim [10/19/2026]
'''

from __future__ import annotations

import json
import os
from datetime import datetime

import numpy as np

from FluidSim.sph.protocols import BoundaryBox, ParticleSnapshot, SimulationParameters, SimulationState


class FrameExporter:
    '''
    Accumulates particle snapshots and writes them as one JSON file.

    Usage:
        exporter = FrameExporter()
        # During simulation loop:
        exporter.addFrame(solver.currentState, solver.getParticleSnapshot())
        # After simulation:
        exporter.export(parameters, boundary, outputDir='output')
    '''

    def __init__(self) -> None:
        self._frames: list[dict] = []
        self._history: dict[str, list] = {
            'times': [],
            'kinetic': [],
            'maxDensity': [],
            'recovered': [],
        }

    @property
    def nFrames(self) -> int:
        '''Frames recorded so far.'''
        return len(self._frames)

    @property
    def frames(self) -> list[dict]:
        return self._frames

    def addFrame(self, state: SimulationState, snapshot: ParticleSnapshot) -> None:
        '''
        Append one tick's particle data and diagnostics.

        Parameters:
        -----------
        state : SimulationState
            Diagnostics after the tick
        snapshot : ParticleSnapshot
            Active particle data after the tick
        '''
        frame = {
            'time': round(state.time, 6),
            'indices': snapshot.indices.tolist(),
            'positions': np.round(snapshot.positions, 6).tolist(),
            'speeds': np.round(snapshot.speeds(), 6).tolist(),
            'densities': np.round(snapshot.densities, 4).tolist(),
        }
        self._frames.append(frame)

        self._history['times'].append(round(state.time, 6))
        self._history['kinetic'].append(round(state.kineticEnergy, 6))
        self._history['maxDensity'].append(round(state.maxDensity, 4))
        self._history['recovered'].append(state.recoveredParticles)

    def export(
        self,
        parameters: SimulationParameters,
        boundary: BoundaryBox,
        outputDir: str = 'FluidSim/output',
        scenarioName: str = 'block',
    ) -> str:
        '''
        Write the collected run to a timestamped JSON file.

        Parameters:
        -----------
        parameters : SimulationParameters
            Parameters in effect at the end of the run
        boundary : BoundaryBox
            Container geometry
        outputDir : str
            Output directory path
        scenarioName : str
            Tag used in the output filename

        Returns:
        --------
        str : Path to the exported JSON file
        '''
        os.makedirs(outputDir, exist_ok=True)

        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        filename = f'fluidSim_{scenarioName}_{timestamp}.json'
        filepath = os.path.join(outputDir, filename)

        with open(filepath, 'w') as f:
            json.dump(self.toDict(parameters, boundary), f, indent=None, separators=(',', ':'))

        return filepath

    def toDict(self, parameters: SimulationParameters, boundary: BoundaryBox) -> dict:
        '''Collected frames in the export layout, without writing a file.'''
        return {
            'meta': {
                'type': 'fluidSim',
                'dimensions': boundary.dimensions,
                'nFrames': len(self._frames),
                'nParticles': len(self._frames[-1]['positions']) if self._frames else 0,
                'created': datetime.now().isoformat(),
            },
            'parameters': parameters.toDict(),
            'boundary': boundary.toDict(),
            'frames': self._frames,
            'history': self._history,
        }
