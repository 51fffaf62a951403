# -- Diagnostic Plot Tests -- #

'''
Trace layout of the sandbox diagnostic figures.
'''

import numpy as np
import pytest

from physicsSandbox.StringFluid.visualization.diagnosticPlots import plotEnergyHistory, plotFrame


ENERGY = {
    'times': [0.0, 0.1, 0.2],
    'fluidKinetic': [0.0, 1.0, 2.0],
    'stringKinetic': [4.0, 3.0, 2.0],
    'total': [4.0, 4.0, 4.0],
}


def testEnergyHistoryHasOneTracePerSeries():
    fig = plotEnergyHistory(ENERGY)
    assert [trace.name for trace in fig.data] == ['Fluid', 'String', 'Total', 'String share']
    assert list(fig.data[3].y) == pytest.approx([1.0, 0.75, 0.5])


def testEnergyShareIsZeroWithoutEnergy():
    quiet = {key: [0.0, 0.0] for key in ENERGY}
    fig = plotEnergyHistory(quiet)
    assert list(fig.data[3].y) == [0.0, 0.0]


def testFrameDrawsParticlesStringAndShapes():
    frame = {
        'time': 0.5,
        'positions': [[0.0, 0.0], [0.5, 0.5]],
        'velocityMagnitudes': [0.0, 1.0],
        'string': [[-3.0, 0.0], [0.0, 0.2], [3.0, 0.0]],
    }
    obstacles = [{'center': [0.0, -2.0], 'size': [1.0, 0.5]}]

    fig = plotFrame(frame, boundsSize=[8.0, 6.0], obstacles=obstacles)

    assert [trace.name for trace in fig.data] == ['Fluid', 'String']
    assert np.asarray(fig.data[1].x).tolist() == [-3.0, 0.0, 3.0]
    # World rectangle plus one obstacle
    assert len(fig.layout.shapes) == 2
    assert fig.layout.shapes[1].y0 == pytest.approx(-2.25)
