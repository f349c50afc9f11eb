"""
Multi-Pass Code Generator
=========================

This module drives the symbol table and the AST emitters over a program
until every label has settled, then generates the final bytes.

Sizing Passes
-------------
- Walk the statements in source order from the origin
- Declare each label at the current address (None if the address is
  unknown) and each equate with its expression
- Advance the address by the size of every element
- Stop when a pass leaves every known label with the value it had after
  the previous pass (a fixed point)

An element whose size cannot be computed yet does not abort the pass:
the address becomes unknown until the next ORG, and labels declared in
the meantime are unknown for this pass.

Final Pass
----------
- Walk the statements once more, calling generate() on every element
- Collect every element error instead of stopping at the first one
- Report each label that was never declared as an undefined symbol

Example
-------
>>> from z80core.assembler.codegen import CodeGenerator
>>> from z80core.assembler.program import Instruction, LabelDef
>>> from z80core.assembler.ast import ConcreteByte, jr_relative_offset
>>> codegen = CodeGenerator()
>>> codegen.generate([
...     LabelDef("loop"),
...     Instruction([ConcreteByte(0x18), jr_relative_offset("loop")]),
... ])
b'\\x18\\xfe'
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import logging

from z80core.config import MIN_PASSES, AssemblerConfig
from z80core.errors import (
    AssemblerError,
    ConvergenceError,
    DuplicateSymbolError,
    ErrorCollector,
    SourceLocation,
    TooManyErrors,
    UndefinedSymbolError,
    UnresolvedValueError,
)
from z80core.assembler.ast import element_size, generate_element
from z80core.assembler.expressions import Expression
from z80core.assembler.program import (
    EquateDef,
    Instruction,
    LabelDef,
    OrgDirective,
    Statement,
)
from z80core.assembler.symbols import SymbolTable

logger = logging.getLogger(__name__)


# =============================================================================
# Generated Output
# =============================================================================

@dataclass
class EmittedChunk:
    """
    Bytes generated for one instruction.

    Attributes:
        address: Address of the first byte (None if it was never known)
        data: The generated bytes
        location: Source location of the instruction
    """
    address: Optional[int]
    data: bytes
    location: Optional[SourceLocation] = None


# =============================================================================
# Code Generator
# =============================================================================

class CodeGenerator:
    """
    Generates machine code from program statements.

    The code generator owns:
    - The symbol table of the run
    - Predefined symbols, re-declared at the start of every run
    - The generated chunks and the error collection

    Usage:
        codegen = CodeGenerator()
        codegen.generate(statements)
        code = codegen.get_code()
        codegen.write_binary("output.bin")
    """

    def __init__(
        self,
        config: Optional[AssemblerConfig] = None,
        symbols: Optional[SymbolTable] = None,
    ):
        """
        Initialize the code generator.

        Args:
            config: Run settings (origin, pass and error limits, strictness)
            symbols: Symbol table to use; a fresh one by default

        Raises:
            ValueError: If config.max_passes is below 2
        """
        self._config = config or AssemblerConfig()
        if self._config.max_passes < MIN_PASSES:
            raise ValueError(
                f"max_passes must be at least {MIN_PASSES}, got {self._config.max_passes}"
            )
        self._symbols = symbols if symbols is not None else SymbolTable()
        self._predefined: dict[str, int] = {}
        self._errors = ErrorCollector(max_errors=self._config.max_errors)
        self._chunks: list[EmittedChunk] = []
        self._passes = 0

    @property
    def symbols(self) -> SymbolTable:
        return self._symbols

    @property
    def config(self) -> AssemblerConfig:
        return self._config

    def define_symbol(self, name: str, value: int) -> None:
        """
        Pre-define a symbol (like -D on the command line).

        Predefined symbols survive the reset at the start of each run.
        """
        self._predefined[name] = value

    # =========================================================================
    # Main Entry Point
    # =========================================================================

    def generate(self, statements: list[Statement]) -> bytes:
        """
        Generate machine code from statements.

        Args:
            statements: Program statements in source order

        Returns:
            The concatenated bytes of every instruction

        Raises:
            ConvergenceError: If labels never settle within max_passes
            AssemblerError: If the final pass collected errors (the message
                holds the full report; see also has_errors())
        """
        # Reset state for a fresh run
        self._symbols.reset()
        self._errors = ErrorCollector(max_errors=self._config.max_errors)
        self._chunks = []
        self._passes = 0

        previous: Optional[dict[str, int]] = None

        for pass_number in range(1, self._config.max_passes + 1):
            self._declare_predefined()
            self._walk(statements, final=False)
            snapshot = self._symbols.known_values()
            logger.debug(
                f"pass {pass_number}: {len(snapshot)} of {len(self._symbols)} labels known"
            )
            if snapshot == previous:
                break
            previous = snapshot
        else:
            raise ConvergenceError(self._config.max_passes)

        self._passes = pass_number

        try:
            self._declare_predefined()
            self._walk(statements, final=True)
            self._report_undefined()
        except TooManyErrors:
            pass  # Already collected max_errors

        if self._errors.has_errors():
            raise AssemblerError(
                f"Assembly failed with {self._errors.error_count()} errors:\n\n"
                f"{self._errors.report()}"
            )

        code = self.get_code()
        logger.debug(f"generated {len(code)} bytes in {self._passes} passes")
        return code

    # =========================================================================
    # Passes
    # =========================================================================

    def _declare_predefined(self) -> None:
        for name, value in self._predefined.items():
            self._symbols.declare_value(name, value, SourceLocation("<predefined>", 0, 0))

    def _walk(self, statements: list[Statement], final: bool) -> None:
        """Run one pass over the statements; the final pass generates bytes."""
        pc: Optional[int] = self._config.origin
        declared: dict[str, Optional[SourceLocation]] = {}

        for stmt in statements:
            if isinstance(stmt, LabelDef):
                if final:
                    self._check_redefinition(stmt.name, stmt.location, declared)
                self._symbols.declare_value(stmt.name, pc, stmt.location)
            elif isinstance(stmt, EquateDef):
                if final:
                    self._check_redefinition(
                        stmt.name, stmt.location, declared, stmt.expression, pc
                    )
                self._symbols.declare_expression(stmt.name, stmt.expression, pc, stmt.location)
            elif isinstance(stmt, OrgDirective):
                pc = stmt.expression.evaluate(self._symbols, pc, final)
                if pc is None and final:
                    self._errors.add(UnresolvedValueError(
                        f"not able to determine the origin '{stmt.expression}'", stmt.location
                    ))
            elif isinstance(stmt, Instruction):
                if final:
                    pc = self._emit(stmt, pc)
                else:
                    pc = self._advance(stmt, pc)
            else:
                raise TypeError(f"unknown statement: {stmt!r}")

    def _advance(self, inst: Instruction, pc: Optional[int]) -> Optional[int]:
        """Address after an instruction, or None if it cannot be known yet."""
        if pc is None:
            return None
        try:
            return pc + sum(element_size(self._symbols, e) for e in inst.elements)
        except AssemblerError as e:
            logger.debug(f"size unknown at {inst.location}: {e.message}")
            return None

    def _emit(self, inst: Instruction, pc: Optional[int]) -> Optional[int]:
        """Generate an instruction's bytes, collecting element errors."""
        data = bytearray()
        size_known = pc is not None

        for element in inst.elements:
            try:
                data += generate_element(self._symbols, element, pc)
            except AssemblerError as e:
                self._errors.add(e)
                # Pad so later addresses stay where they were during sizing
                try:
                    data += bytes(element_size(self._symbols, element))
                except AssemblerError:
                    size_known = False

        self._chunks.append(EmittedChunk(pc, bytes(data), inst.location))
        return pc + len(data) if size_known else None

    def _check_redefinition(
        self,
        name: str,
        location: Optional[SourceLocation],
        declared: dict[str, Optional[SourceLocation]],
        expression: Optional[Expression] = None,
        pc: Optional[int] = None,
    ) -> None:
        """
        A label declared twice in a pass.

        A direct value always replaces the earlier one. An equate only
        replaces a label that is still unknown: once the label has a value
        (an earlier read resolved the first equate, or a code label set it)
        the new expression is ignored, and the warning says so.

        Recorded as a warning, or as a DuplicateSymbolError in strict mode.
        """
        if name not in declared:
            declared[name] = location
            return

        original = declared[name]
        if self._config.strict_redefinition:
            self._errors.add(DuplicateSymbolError(name, location, original))
        else:
            where = f"{location}: " if location else ""
            first = f" (first defined at {original})" if original else ""
            message = f"label '{name}' redefined"
            label = self._symbols.get(name)
            if expression is not None and label is not None and label.known:
                if expression.evaluate(self._symbols, pc) != label.value:
                    message = (
                        f"equate '{name}' ignored, value already fixed at {label.value}"
                    )
            self._errors.add_warning(f"{where}{message}{first}")

    def _report_undefined(self) -> None:
        for name in sorted(self._symbols.unresolved_names()):
            label = self._symbols.get(name)
            self._errors.add(UndefinedSymbolError(
                name,
                location=label.location if label else None,
                similar_symbols=self._symbols.find_similar(name),
            ))

    # =========================================================================
    # Results
    # =========================================================================

    def get_code(self) -> bytes:
        """Return the generated bytes of the last run."""
        return b"".join(chunk.data for chunk in self._chunks)

    def get_chunks(self) -> list[EmittedChunk]:
        """Return the per-instruction output of the last run."""
        return list(self._chunks)

    def get_origin(self) -> int:
        """Return the origin address."""
        return self._config.origin

    def get_symbols(self) -> dict[str, int]:
        """Return a dictionary of known symbol names to values."""
        return self._symbols.known_values()

    def get_pass_count(self) -> int:
        """Return the number of sizing passes of the last run."""
        return self._passes

    def has_errors(self) -> bool:
        """Check if any errors occurred during generation."""
        return self._errors.has_errors()

    def get_errors(self) -> list[AssemblerError]:
        """Return the errors collected during the last run."""
        return list(self._errors.errors)

    def get_warnings(self) -> list[str]:
        """Return the warnings collected during the last run."""
        return list(self._errors.warnings)

    def get_error_report(self) -> str:
        """Get formatted error report."""
        return self._errors.report()

    # =========================================================================
    # Output File Writing
    # =========================================================================

    def write_binary(self, filepath: str | Path) -> None:
        """Write the generated bytes as a raw binary image."""
        Path(filepath).write_bytes(self.get_code())

    def write_symbols(self, filepath: str | Path) -> None:
        """
        Write symbol table file.

        Format: name value (one per line, hexadecimal)
        """
        with open(filepath, "w") as f:
            f.write("# Symbol table\n")
            f.write("# Generated by z80emit\n")
            for name, value in sorted(self.get_symbols().items()):
                f.write(f"{name} ${value & 0xFFFF:04X}\n")


# =============================================================================
# Convenience Functions
# =============================================================================

def assemble(statements: list[Statement], origin: int = 0) -> bytes:
    """
    Convenience function to generate code for statements.

    Raises:
        AssemblerError: If generation fails
    """
    codegen = CodeGenerator(AssemblerConfig(origin=origin))
    return codegen.generate(statements)
