"""
chip8run - Headless CHIP-8 Runner
=================================

Runs a CHIP-8 program without a window for a fixed number of 60 Hz frames
and prints the resulting framebuffer as text. Useful for smoke-testing
ROMs, checking quirk settings and capturing screenshots in CI.

Usage Examples
--------------
Run for one second of machine time (60 frames):
    $ chip8run ibm_logo.ch8

Run with the COSMAC VIP quirks and a fixed random seed:
    $ chip8run maze.ch8 --legacy --seed 7 --frames 300

Hold keys down for the whole run (host layout or hex labels):
    $ chip8run keypad_test.ch8 --key W --key 0xA

Save a PNG screenshot:
    $ chip8run pong.ch8 --screenshot pong.png --scale 10

Copyright (c) 2026 chip8-vm Contributors
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from chip8_vm import __version__
from chip8_vm.cli.errors import ExitCode, handle_cli_exception
from chip8_vm.emulator import BreakReason, Emulator, EmulatorConfig, FaultPolicy, parse_key

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def parse_keys(_ctx, _param, values: Tuple[str, ...]) -> Tuple[int, ...]:
    """Click callback turning --key names into keypad indices."""
    keys = []
    for value in values:
        index = parse_key(value)
        if index is None:
            raise click.BadParameter(f"unknown key '{value}'")
        keys.append(index)
    return tuple(keys)


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "rom_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--legacy",
    is_flag=True,
    help="Use the original COSMAC VIP behavior for shifts, Bnnn and Fx55/Fx65",
)
@click.option(
    "-f", "--frames",
    type=click.IntRange(min=0),
    default=60,
    show_default=True,
    help="Number of 60 Hz frames to run",
)
@click.option(
    "--ips",
    type=click.IntRange(min=60),
    default=700,
    show_default=True,
    help="Instructions per second",
)
@click.option(
    "--seed",
    type=int,
    default=None,
    help="Seed for the random number instruction (Cxkk)",
)
@click.option(
    "--halt-on-fault",
    is_flag=True,
    help="Stop at the first faulting instruction instead of skipping it",
)
@click.option(
    "-k", "--key",
    "keys",
    multiple=True,
    callback=parse_keys,
    help="Key held down for the whole run (e.g. W, 0xA). Repeatable.",
)
@click.option(
    "--screenshot",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the final framebuffer to a PNG file",
)
@click.option(
    "--scale",
    type=click.IntRange(min=1),
    default=8,
    show_default=True,
    help="Screenshot pixel size",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output (debug logging)",
)
@click.version_option(version=__version__, prog_name="chip8run")
def main(
    rom_file: Path,
    legacy: bool,
    frames: int,
    ips: int,
    seed: Optional[int],
    halt_on_fault: bool,
    keys: Tuple[int, ...],
    screenshot: Optional[Path],
    scale: int,
    verbose: bool,
) -> None:
    """
    Run a CHIP-8 program headless and print the screen.

    ROM_FILE is the program image (.ch8), loaded at $200.

    The framebuffer is printed to stdout ('#' lit, '.' dark) and a one-line
    summary to stderr.
    """
    setup_logging(verbose)

    try:
        config = EmulatorConfig(
            legacy=legacy,
            instructions_per_second=ips,
            fault_policy=FaultPolicy.HALT if halt_on_fault else FaultPolicy.SKIP,
            seed=seed,
        )
        emu = Emulator(config)
        emu.load_rom(rom_file)

        for key in keys:
            emu.press_key(key)

        logger.debug(
            f"Running {rom_file.name} for {frames} frames at {ips} instructions/s "
            f"({'legacy' if legacy else 'modern'} mode)"
        )
        event = emu.run_frames(frames)

        click.echo(emu.display_text)

        if screenshot:
            screenshot.write_bytes(emu.render_display(scale=scale))
            if verbose:
                click.echo(f"Screenshot written to: {screenshot}", err=True)

        regs = emu.registers
        click.echo(
            f"frames={emu.frames} instructions={emu.total_instructions} "
            f"faults={emu.fault_count} pc=${regs['pc']:03X}",
            err=True,
        )

        if event.reason is BreakReason.ERROR:
            handle_cli_exception(event.fault, verbose=verbose, error_type="Execution")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Load")


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    main()
