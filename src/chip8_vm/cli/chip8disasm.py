"""
chip8disasm - CHIP-8 Disassembler Command-Line Interface
========================================================

This module implements the command-line interface for the CHIP-8
disassembler.

Usage Examples
--------------
Disassemble a program image (loaded at $200):
    $ chip8disasm pong.ch8

Limit number of instructions:
    $ chip8disasm pong.ch8 --count 20

Output to file:
    $ chip8disasm pong.ch8 -o pong.lst

Compact listing without raw bytes:
    $ chip8disasm pong.ch8 --no-bytes

Copyright (c) 2026 chip8-vm Contributors
"""

import sys
from pathlib import Path
from typing import Optional

import click

from chip8_vm import __version__
from chip8_vm.cli.errors import ExitCode, handle_cli_exception
from chip8_vm.disassembler import Chip8Disassembler, DEFAULT_ORIGIN


def parse_address(text: str) -> int:
    """
    Parse an address given as hex ("0x200", "$200") or decimal ("512").

    Raises:
        ValueError: If the text is not a number
    """
    text = text.strip()
    if text.lower().startswith("0x"):
        return int(text, 16)
    if text.startswith("$"):
        return int(text[1:], 16)
    return int(text)


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file (default: stdout)",
)
@click.option(
    "-a", "--address",
    type=str,
    default=f"0x{DEFAULT_ORIGIN:X}",
    help="Load address of the first byte (hex with 0x/$ prefix or decimal). Default: 0x200",
)
@click.option(
    "-c", "--count",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum number of instructions to disassemble (default: all)",
)
@click.option(
    "--legacy",
    is_flag=True,
    help="List Bnnn as JP V0, nnn (COSMAC VIP) instead of JP Vx, nnn",
)
@click.option(
    "--no-bytes",
    is_flag=True,
    help="Omit raw bytes from output (show only mnemonic and operand)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="chip8disasm")
def main(
    input_file: Path,
    output: Optional[Path],
    address: str,
    count: Optional[int],
    legacy: bool,
    no_bytes: bool,
    verbose: bool,
) -> None:
    """
    Disassemble a CHIP-8 program image.

    INPUT_FILE is the program image (.ch8) to disassemble.

    Examples:

        # Full listing
        chip8disasm pong.ch8

        # First 20 instructions to a file
        chip8disasm pong.ch8 --count 20 -o pong.lst
    """
    try:
        base_address = parse_address(address)
    except ValueError:
        click.echo(f"Error: Invalid address '{address}'", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    if not 0 <= base_address <= 0xFFF:
        click.echo("Error: Address must be 0-4095 (0x000-0xFFF)", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    try:
        data = input_file.read_bytes()

        if len(data) == 0:
            click.echo(f"Error: {input_file} is empty", err=True)
            sys.exit(ExitCode.INVALID_ARGS)

        if verbose:
            click.echo(f"Input file: {input_file} ({len(data)} bytes)", err=True)
            click.echo(f"Base address: ${base_address:03X}", err=True)

        output_lines = [
            f"; Disassembly of {input_file.name}",
            f"; Size: {len(data)} bytes",
            f"; Base address: ${base_address:03X}",
            "",
        ]

        disasm = Chip8Disassembler(legacy=legacy)
        instructions = disasm.disassemble(data, start_address=base_address, count=count)
        output_lines.append(
            disasm.disassemble_to_text(
                data, start_address=base_address, count=count, show_bytes=not no_bytes
            )
        )

        result = "\n".join(output_lines) + "\n"

        if output:
            output.write_text(result, encoding="utf-8")
            if verbose:
                click.echo(f"Output written to: {output}", err=True)
        else:
            click.echo(result, nl=False)

        if verbose:
            unknown = sum(1 for instr in instructions if instr.comment == "unknown opcode")
            click.echo(
                f"Instructions disassembled: {len(instructions)} ({unknown} unknown)",
                err=True,
            )

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Disassembly")


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    main()
