# -- String/Fluid Sandbox Runner -- #

'''
Command-line entry point for headless string/fluid sandbox runs.

Builds the string-in-tank scenario from a preset or JSON file, runs
the coupled simulation at a fixed frame step with progress reporting,
and optionally exports frame data for playback.

Usage:
    python -m physicsSandbox.StringFluid.runner                      # Small preset
    python -m physicsSandbox.StringFluid.runner --preset standard
    python -m physicsSandbox.StringFluid.runner --config sandbox.json
    python -m physicsSandbox.StringFluid.runner --pluck 0.8 --no-export
'''

from __future__ import annotations

import argparse
import math
import os
import time as timeModule

from tqdm import tqdm

from physicsSandbox.StringFluid.sandbox import SandboxConfig
from physicsSandbox.StringFluid.scenarios.stringInTank import createStringInTank
from physicsSandbox.StringFluid.export.frameExporter import FrameExporter
from physicsSandbox.StringFluid.visualization.diagnosticPlots import plotEnergyHistory, plotFrame


#--------------------------------------------------------------------#
# -- CLI Argument Parser -- #
#--------------------------------------------------------------------#

def buildParser() -> argparse.ArgumentParser:
    '''Build the CLI argument parser.'''
    parser = argparse.ArgumentParser(
        description='StringFluid -- coupled vibrating string and SPH fluid sandbox',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        '--config', type=str, default=None,
        help='Path to JSON configuration file',
    )
    parser.add_argument(
        '--preset', type=str, default='small',
        choices=['small', 'standard'],
        help='Sandbox preset (default: small)',
    )
    parser.add_argument(
        '--end-time', type=float, default=None,
        help='Override the simulated duration [s]',
    )
    parser.add_argument(
        '--dt', type=float, default=None,
        help='Override the frame time step [s]',
    )
    parser.add_argument(
        '--pluck', type=float, default=None,
        help='Override the initial pluck amplitude (0 disables the pluck)',
    )
    parser.add_argument(
        '--no-export', action='store_true',
        help='Skip frame data export',
    )
    parser.add_argument(
        '--plot', action='store_true',
        help='Write energy and final-frame diagnostic plots (HTML)',
    )
    parser.add_argument(
        '--output-dir', type=str, default='physicsSandbox/StringFluid/output',
        help='Output directory for exported frames (default: physicsSandbox/StringFluid/output)',
    )

    return parser


#--------------------------------------------------------------------#
# -- Runner Class -- #
#--------------------------------------------------------------------#

class StringFluidRunner:
    '''
    Runs a coupled sandbox simulation and stores results.

    Handles the full pipeline: scenario setup, simulation loop
    with progress reporting, and optional frame export.
    '''

    def __init__(self) -> None:
        self._exporter: FrameExporter = FrameExporter()

    def runFromConfig(
        self,
        configPath: str,
        doExport: bool = True,
        exportDir: str = 'physicsSandbox/StringFluid/output',
    ) -> dict:
        '''
        Run a simulation from a JSON configuration file.

        Parameters:
        -----------
        configPath : str
            Path to the JSON configuration file
        doExport : bool
            Whether to export frame data
        exportDir : str
            Output directory for frame export

        Returns:
        --------
        dict : Simulation results summary
        '''
        sandboxConfig = SandboxConfig.fromJson(configPath)
        return self.run(sandboxConfig, doExport=doExport, exportDir=exportDir)

    def run(
        self,
        sandboxConfig: SandboxConfig,
        doExport: bool = True,
        exportDir: str = 'physicsSandbox/StringFluid/output',
        showProgress: bool = True,
        doPlot: bool = False,
    ) -> dict:
        '''
        Run a string-in-tank simulation.

        Parameters:
        -----------
        sandboxConfig : SandboxConfig
            Sandbox configuration
        doExport : bool
            Whether to export frame data
        exportDir : str
            Output directory for frame export
        showProgress : bool
            Whether to draw the progress bar
        doPlot : bool
            Whether to write diagnostic plots to exportDir

        Returns:
        --------
        dict : Simulation results summary
        '''
        print()
        print('=' * 62)
        print('  STRINGFLUID -- COUPLED STRING / SPH SANDBOX')
        print('=' * 62)
        print()

        #--------------------------------------------------------------------#
        # Scenario Setup
        #--------------------------------------------------------------------#
        print('-' * 62)
        print('  SCENARIO SETUP')
        print('-' * 62)

        simulation = createStringInTank(sandboxConfig)
        fluidCfg = sandboxConfig.fluid
        stringCfg = sandboxConfig.string
        string = simulation.string

        print(f'  World Size:        {fluidCfg.boundsSize[0]:8.2f} x {fluidCfg.boundsSize[1]:.2f}')
        print(f'  Fluid Particles:   {simulation.fluid.getParticleCount():8d}')
        print(f'  Solid Particles:   {simulation.fluid.boundaryField.count:8d}')
        print(f'  Obstacles:         {len(sandboxConfig.obstacles):8d}')
        print(f'  Smoothing Radius:  {fluidCfg.smoothingRadius:8.3f}')
        print(f'  Target Density:    {fluidCfg.targetDensity:8.3f}')
        print(f'  String Nodes:      {string.nodeCount:8d}')
        print(f'  Segment Length:    {string.segmentLength:8.4f}')
        print(f'  Tension:           {stringCfg.tension:8.2f}')
        print(f'  Substeps / Frame:  {string.substepCount(sandboxConfig.dt):8d}')
        print(f'  Pluck Amplitude:   {sandboxConfig.pluckAmplitude:8.3f}')
        print(f'  Frame dt:          {sandboxConfig.dt:8.4f} s')
        print(f'  End Time:          {sandboxConfig.endTime:8.2f} s')
        print()

        # Record initial frame
        self._exporter.addFrame(
            simulation.currentState, simulation.fluid.particles, string.getStringPositions(),
        )

        #--------------------------------------------------------------------#
        # Simulation Loop
        #--------------------------------------------------------------------#
        print('-' * 62)
        print('  RUNNING SIMULATION')
        print('-' * 62)
        print()
        print(f'  {"Time":>8}  {"Step":>8}  {"FluidKE":>10}  {"StringKE":>10}  {"MaxVel":>8}  {"Forced":>6}')
        print(f'  {"(s)":>8}  {"":>8}  {"":>10}  {"":>10}  {"":>8}  {"":>6}')
        print('  ' + '-' * 58)

        nSteps = int(math.ceil(sandboxConfig.endTime / sandboxConfig.dt - 1e-9))
        printEvery = max(1, nSteps // 20)
        nextOutputTime = sandboxConfig.outputInterval

        wallClockStart = timeModule.time()

        for stepIndex in tqdm(range(nSteps), disable=not showProgress, leave=False):
            state = simulation.step(sandboxConfig.dt)

            if state.time >= nextOutputTime - 1e-9:
                self._exporter.addFrame(state, simulation.fluid.particles, string.getStringPositions())
                nextOutputTime += sandboxConfig.outputInterval

            if (stepIndex + 1) % printEvery == 0:
                tqdm.write(
                    f'  {state.time:8.4f}  {state.step:8d}  {state.fluidKineticEnergy:10.4f}  '
                    f'{state.stringKineticEnergy:10.4f}  {state.maxFluidSpeed:8.4f}  '
                    f'{state.forcedParticles:6d}'
                )

        wallClockSeconds = timeModule.time() - wallClockStart
        finalState = simulation.currentState

        print()
        print(f'  Simulation complete.')
        print(f'  Total steps:       {finalState.step:8d}')
        print(f'  Wall-clock time:   {wallClockSeconds:8.1f} s')
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
                config=sandboxConfig,
                outputDir=exportDir,
                scenarioName='stringInTank',
            )
            print(f'  Exported to: {exportPath}')
            print()

        plotPaths = []
        if doPlot:
            print('-' * 62)
            print('  WRITING DIAGNOSTIC PLOTS')
            print('-' * 62)

            plotPaths = self._writePlots(sandboxConfig, exportDir)
            for path in plotPaths:
                print(f'  Wrote: {path}')
            print()

        #--------------------------------------------------------------------#
        # Summary
        #--------------------------------------------------------------------#
        print('=' * 62)
        print('  SIMULATION SUMMARY')
        print('=' * 62)
        print(f'  Final Fluid KE:    {finalState.fluidKineticEnergy:10.6f}')
        print(f'  Final String KE:   {finalState.stringKineticEnergy:10.6f}')
        print(f'  Max Density Error: {finalState.maxDensityError * 100:8.3f} %')
        print(f'  Max Fluid Speed:   {finalState.maxFluidSpeed:8.4f}')
        print(f'  Max String Speed:  {finalState.maxStringSpeed:8.4f}')
        print('=' * 62)
        print()

        return {
            'finalState': finalState,
            'wallClockSeconds': wallClockSeconds,
            'nFrames': self._exporter.nFrames,
            'exportPath': exportPath,
            'plotPaths': plotPaths,
        }

    def _writePlots(self, sandboxConfig: SandboxConfig, outputDir: str) -> list[str]:
        '''Write the energy history and the last frame as HTML figures.'''
        os.makedirs(outputDir, exist_ok=True)
        data = self._exporter.buildOutput(sandboxConfig)

        energyPath = os.path.join(outputDir, 'stringFluid_energy.html')
        plotEnergyHistory(data['energy']).write_html(energyPath)

        framePath = os.path.join(outputDir, 'stringFluid_finalFrame.html')
        plotFrame(
            data['frames'][-1],
            boundsSize=data['config']['boundsSize'],
            obstacles=data['config']['obstacles'],
        ).write_html(framePath)

        return [energyPath, framePath]


#--------------------------------------------------------------------#
# -- Entry Point -- #
#--------------------------------------------------------------------#

def main(argv: list[str] | None = None) -> None:
    '''CLI entry point.'''
    parser = buildParser()
    args = parser.parse_args(argv)

    if args.config:
        sandboxConfig = SandboxConfig.fromJson(args.config)
    else:
        presets = {
            'small': SandboxConfig.small,
            'standard': SandboxConfig.standard,
        }
        sandboxConfig = presets[args.preset]()

    if args.end_time is not None:
        sandboxConfig.endTime = args.end_time
    if args.dt is not None:
        sandboxConfig.dt = args.dt
    if args.pluck is not None:
        sandboxConfig.pluckAmplitude = args.pluck

    runner = StringFluidRunner()
    runner.run(
        sandboxConfig,
        doExport=not args.no_export,
        exportDir=args.output_dir,
        doPlot=args.plot,
    )


if __name__ == '__main__':
    main()
