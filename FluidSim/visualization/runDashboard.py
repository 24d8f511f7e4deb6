# -- Run Diagnostics Dashboard -- #

'''
Plotly views of an exported fluid run.

Both functions take the dictionary written by FrameExporter (either
FrameExporter.toDict() or the loaded JSON file), so a run can be
inspected long after the solver is gone. 3D runs are shown as their
x-y projection.

FluidSim [10/19/2026]
'''

from __future__ import annotations

import numpy as np
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from FluidSim.visualization import theme


def _containerOutline(boundary: dict) -> tuple[list[float], list[float]]:
    (x0, y0), (x1, y1) = boundary['min'][:2], boundary['max'][:2]
    return [x0, x1, x1, x0, x0], [y0, y0, y1, y1, y0]


def plotParticleFrame(frame: dict, boundary: dict, title: str | None = None) -> go.Figure:
    '''
    Scatter of one recorded frame, colored by particle speed.

    Parameters:
    -----------
    frame : dict
        One entry of the export 'frames' list
    boundary : dict
        Export 'boundary' entry ({'min': [...], 'max': [...]})
    title : str | None
        Figure title (defaults to the frame time)

    Returns:
    --------
    go.Figure : Plotly figure
    '''
    positions = np.asarray(frame['positions'], dtype=float).reshape(-1, len(boundary['min']))
    outlineX, outlineY = _containerOutline(boundary)

    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=outlineX, y=outlineY, mode='lines', name='Container',
        line=dict(color=theme.REFERENCE_LINE, width=1),
    ))
    fig.add_trace(go.Scatter(
        x=positions[:, 0], y=positions[:, 1], mode='markers', name='Particles',
        marker=dict(
            size=6,
            color=frame['speeds'],
            colorscale=theme.SPEED_SCALE,
            colorbar=dict(title='Speed'),
        ),
    ))

    fig.update_layout(
        title=title or f'Particles at t = {frame["time"]:.3f} s',
        xaxis_title='x',
        yaxis_title='y',
        template=theme.TEMPLATE,
        height=500,
    )
    fig.update_yaxes(scaleanchor='x', scaleratio=1)
    return fig


def createRunDashboard(data: dict) -> go.Figure:
    '''
    Four-panel summary of a run.

    Layout:
        Row 1: Final Particles  |  Kinetic Energy
        Row 2: Max Density      |  Recovered Particles

    Parameters:
    -----------
    data : dict
        Exported run (meta, parameters, boundary, frames, history)

    Returns:
    --------
    go.Figure : Plotly figure with 4 subplots
    '''
    history = data['history']
    boundary = data['boundary']
    times = history['times']

    fig = make_subplots(
        rows=2, cols=2,
        subplot_titles=('Final Particles', 'Kinetic Energy', 'Max Density', 'Recovered Particles'),
        vertical_spacing=0.12,
        horizontal_spacing=0.08,
    )

    ######################################################################
    # Row 1, Col 1: Final Particles
    ######################################################################
    outlineX, outlineY = _containerOutline(boundary)
    fig.add_trace(go.Scatter(x=outlineX, y=outlineY, mode='lines',
                             line=dict(color=theme.REFERENCE_LINE, width=1), showlegend=False),
                  row=1, col=1)
    if data['frames']:
        last = data['frames'][-1]
        positions = np.asarray(last['positions'], dtype=float).reshape(-1, len(boundary['min']))
        fig.add_trace(go.Scatter(x=positions[:, 0], y=positions[:, 1], mode='markers',
                                 marker=dict(size=5, color=last['speeds'],
                                             colorscale=theme.SPEED_SCALE),
                                 showlegend=False),
                      row=1, col=1)
    fig.update_xaxes(title_text='x', row=1, col=1)
    fig.update_yaxes(title_text='y', row=1, col=1)

    ######################################################################
    # Row 1, Col 2: Kinetic Energy
    ######################################################################
    fig.add_trace(go.Scatter(x=times, y=history['kinetic'], mode='lines',
                             line=dict(color=theme.BLUE, width=2), showlegend=False),
                  row=1, col=2)
    fig.update_xaxes(title_text='t (s)', row=1, col=2)
    fig.update_yaxes(title_text='KE', row=1, col=2)

    ######################################################################
    # Row 2, Col 1: Max Density
    ######################################################################
    fig.add_trace(go.Scatter(x=times, y=history['maxDensity'], mode='lines',
                             line=dict(color=theme.ORANGE, width=2), showlegend=False),
                  row=2, col=1)
    fig.add_hline(y=data['parameters']['restDensity'],
                  line=dict(color=theme.REFERENCE_LINE, dash='dash', width=1),
                  row=2, col=1)
    fig.update_xaxes(title_text='t (s)', row=2, col=1)
    fig.update_yaxes(title_text='rho', row=2, col=1)

    ######################################################################
    # Row 2, Col 2: Recovered Particles
    ######################################################################
    fig.add_trace(go.Bar(x=times, y=history['recovered'],
                         marker=dict(color=theme.RED), showlegend=False),
                  row=2, col=2)
    fig.update_xaxes(title_text='t (s)', row=2, col=2)
    fig.update_yaxes(title_text='count', row=2, col=2)

    meta = data['meta']
    fig.update_layout(
        title=(
            f'FluidSim Run -- {meta["nParticles"]} particles, {meta["dimensions"]}D '
            f'| {meta["nFrames"]} frames'
        ),
        template=theme.TEMPLATE,
        height=800,
        showlegend=False,
    )

    return fig
