# -- Sandbox Diagnostic Plots -- #

'''
Plotly-based plots of exported sandbox runs.

Both functions read the dictionary layout written by FrameExporter,
so they work on a live exporter's data as well as on a JSON file
loaded after the run.
'''

from __future__ import annotations

import numpy as np
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from physicsSandbox.StringFluid.visualization import theme


def plotEnergyHistory(energy: dict) -> go.Figure:
    '''
    Fluid, string and total kinetic energy against time.

    Parameters:
    -----------
    energy : dict
        Energy history with "times", "fluidKinetic", "stringKinetic"
        and "total" lists

    Returns:
    --------
    go.Figure : Plotly figure with the energies (top) and the string's
        share of the total (bottom)
    '''
    times = np.asarray(energy['times'])
    fluid = np.asarray(energy['fluidKinetic'])
    string = np.asarray(energy['stringKinetic'])
    total = np.asarray(energy['total'])

    fig = make_subplots(
        rows=2, cols=1, shared_xaxes=True,
        subplot_titles=('Kinetic Energy', 'String Share of Total'),
        vertical_spacing=0.12,
    )

    fig.add_trace(go.Scatter(
        x=times, y=fluid, mode='lines', name='Fluid',
        line=dict(color=theme.BLUE, width=2),
    ), row=1, col=1)
    fig.add_trace(go.Scatter(
        x=times, y=string, mode='lines', name='String',
        line=dict(color=theme.ORANGE, width=2),
    ), row=1, col=1)
    fig.add_trace(go.Scatter(
        x=times, y=total, mode='lines', name='Total',
        line=dict(color=theme.WHITE, width=1, dash='dash'),
    ), row=1, col=1)

    share = np.divide(string, total, out=np.zeros_like(total, dtype=float), where=total > 0.0)
    fig.add_trace(go.Scatter(
        x=times, y=share, mode='lines', name='String share',
        line=dict(color=theme.GREEN, width=2),
    ), row=2, col=1)

    fig.update_xaxes(title_text='Time (s)', row=2, col=1)
    fig.update_yaxes(title_text='Energy', row=1, col=1)
    fig.update_yaxes(title_text='Fraction', range=[0.0, 1.0], row=2, col=1)
    fig.update_layout(
        title='Sandbox Energy History',
        template=theme.TEMPLATE,
        height=600,
    )

    return fig


def plotFrame(frame: dict, boundsSize: list[float], obstacles: list[dict] | None = None) -> go.Figure:
    '''
    Snapshot of one exported frame: particles colored by speed, the
    string polyline, the world rectangle and any obstacles.

    Parameters:
    -----------
    frame : dict
        One entry of the exported "frames" list
    boundsSize : list[float]
        World width and height
    obstacles : list[dict] | None
        Obstacles as {"center": [x, y], "size": [w, h]}

    Returns:
    --------
    go.Figure : Plotly figure
    '''
    positions = np.asarray(frame['positions']).reshape(-1, 2)
    stringNodes = np.asarray(frame['string']).reshape(-1, 2)
    halfW, halfH = boundsSize[0] / 2.0, boundsSize[1] / 2.0

    fig = go.Figure()

    fig.add_trace(go.Scatter(
        x=positions[:, 0], y=positions[:, 1], mode='markers', name='Fluid',
        marker=dict(
            size=6,
            color=frame['velocityMagnitudes'],
            colorscale='Blues',
            colorbar=dict(title='Speed'),
        ),
    ))
    fig.add_trace(go.Scatter(
        x=stringNodes[:, 0], y=stringNodes[:, 1], mode='lines+markers', name='String',
        line=dict(color=theme.ORANGE, width=2),
        marker=dict(size=4),
    ))

    fig.add_shape(
        type='rect', x0=-halfW, y0=-halfH, x1=halfW, y1=halfH,
        line=dict(color=theme.REFERENCE_LINE, width=1),
    )
    for box in obstacles or []:
        (cx, cy), (w, h) = box['center'], box['size']
        fig.add_shape(
            type='rect', x0=cx - w / 2.0, y0=cy - h / 2.0, x1=cx + w / 2.0, y1=cy + h / 2.0,
            line=dict(color=theme.RED, width=2),
        )

    fig.update_layout(
        title=f'Sandbox Frame (t = {frame["time"]:.3f} s)',
        xaxis=dict(range=[-halfW, halfW], scaleanchor='y'),
        yaxis=dict(range=[-halfH, halfH]),
        template=theme.TEMPLATE,
        height=500,
    )

    return fig
