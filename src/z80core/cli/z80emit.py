"""
z80emit - Code Generator Command-Line Interface
===============================================

This module implements the command-line interface for the code generator.
It reads a JSON program (the statements a front end produced) and writes
the raw binary image.

Usage Examples
--------------
Basic generation:
    $ z80emit program.json

With output and symbol files:
    $ z80emit program.json -o program.bin -s program.sym

With origin and defines:
    $ z80emit --origin 0x8000 -D DEBUG=1 program.json

Verbose mode:
    $ z80emit -v program.json
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from z80core import __version__
from z80core.assembler import CodeGenerator, load_program
from z80core.cli.errors import ExitCode, handle_cli_exception
from z80core.config import AssemblerConfig, parse_number


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
    help="Output binary file (default: input.bin)",
)
@click.option(
    "-s", "--symbols",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Generate symbol file",
)
@click.option(
    "-D", "--define",
    multiple=True,
    help="Define symbol (format: NAME=VALUE)",
)
@click.option(
    "--origin",
    default=None,
    help="Start address, decimal or hex ($8000, 0x8000). Default: 0",
)
@click.option(
    "--max-passes",
    type=click.IntRange(min=2),
    default=None,
    help="Maximum number of sizing passes. Default: 100",
)
@click.option(
    "--strict",
    is_flag=True,
    help="Treat a label declared twice as an error instead of a warning",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="z80emit")
def main(
    input_file: Path,
    output: Optional[Path],
    symbols: Optional[Path],
    define: tuple[str, ...],
    origin: Optional[str],
    max_passes: Optional[int],
    strict: bool,
    verbose: bool,
) -> None:
    """
    Generate machine code from a parsed program.

    INPUT_FILE is a JSON program: a list of label, equate, org and
    instruction statements.

    \b
    Examples:
        z80emit program.json              # Outputs program.bin
        z80emit program.json -o out.bin   # Specify output file
        z80emit -D DEBUG=1 program.json   # Define symbol
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    # Environment first, command-line options override
    config = AssemblerConfig.from_env()
    if origin is not None:
        try:
            config.origin = parse_number(origin)
        except ValueError:
            click.echo(f"Error: invalid origin '{origin}'", err=True)
            sys.exit(ExitCode.INVALID_ARGS)
    if max_passes is not None:
        config.max_passes = max_passes
    if strict:
        config.strict_redefinition = True

    output_file = output if output is not None else input_file.with_suffix(".bin")

    codegen = CodeGenerator(config)

    for defn in define:
        if "=" in defn:
            name, value_str = defn.split("=", 1)
            try:
                value = parse_number(value_str)
            except ValueError:
                click.echo(f"Error: invalid value in -D {defn}", err=True)
                sys.exit(ExitCode.INVALID_ARGS)
            codegen.define_symbol(name.strip(), value)
        else:
            # Symbol without value defaults to 1
            codegen.define_symbol(defn.strip(), 1)

    try:
        if verbose:
            click.echo(f"Loading {input_file}...")

        statements = load_program(input_file)
        code = codegen.generate(statements)
        codegen.write_binary(output_file)

        if verbose:
            click.echo(f"Wrote {len(code)} bytes to {output_file}")

        if symbols:
            codegen.write_symbols(symbols)
            if verbose:
                click.echo(f"Wrote symbols to {symbols}")

        for warning in codegen.get_warnings():
            click.echo(f"Warning: {warning}", err=True)

        if verbose:
            click.echo(
                f"Generation complete: {len(code)} bytes at ${config.origin:04X} "
                f"after {codegen.get_pass_count()} passes"
            )
            click.echo(f"Defined {len(codegen.get_symbols())} symbols")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Generation")


if __name__ == "__main__":
    main()
