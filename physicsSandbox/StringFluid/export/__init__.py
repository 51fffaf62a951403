# -- Export Package -- #

'''
Data export utilities for sandbox runs.

Exports frame data as JSON for playback.
'''

from physicsSandbox.StringFluid.export.frameExporter import FrameExporter
