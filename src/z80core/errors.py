"""
z80core Error Hierarchy
=======================

This module defines the exception hierarchy for the z80core package.
All exceptions inherit from Z80Error, allowing callers to catch every
assembler-related error with a single except clause if desired.

Exception Hierarchy
-------------------
Z80Error (base)
└── AssemblerError (assembler-related)
    ├── UnresolvedValueError - value still unknown at final generation
    ├── ValueRangeError - resolved value does not fit its encoding
    │   └── BranchRangeError - relative jump target too far
    ├── UndefinedSymbolError - label never declared
    ├── DuplicateSymbolError - label declared twice (strict mode)
    ├── ConvergenceError - passes never reached a fixed point
    ├── ProgramFormatError - malformed program description
    └── TooManyErrors - error collector limit reached

Design Philosophy
-----------------
Each exception captures source location information (filename, line, column)
when applicable, so the final report points at the offending element.

Error messages follow this format:
    filename:line:column: error: description
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class Z80Error(Exception):
    """
    Base exception for all z80core errors.

        try:
            codegen.generate(statements)
        except Z80Error as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for in-memory programs)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Assembler Exceptions
# =============================================================================

class AssemblerError(Z80Error):
    """
    Base exception for all assembler-related errors.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location and hint.

        Example output:
            main.asm:15:9: error: undefined symbol 'prnt_char'
            hint: did you mean 'print_char'?
        """
        if self.location:
            parts = [f"{self.location}: error: {self.message}"]
        else:
            parts = [f"error: {self.message}"]

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


class UnresolvedValueError(AssemblerError):
    """
    A value needed to generate bytes is still unknown.

    Raised by the AST emitters during the final pass, when an expression
    evaluated with must_resolve=True still returns None (or the program
    counter itself is unknown).
    """
    pass


class ValueRangeError(AssemblerError):
    """
    A resolved value does not fit the encoding it is emitted into.

    Attributes:
        value: The offending value, as written by the programmer
    """

    def __init__(
        self,
        message: str,
        value: int,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
    ):
        self.value = value
        super().__init__(message, location=location, hint=hint)


class BranchRangeError(ValueRangeError):
    """
    Relative jump target is out of range.

    The jump opcode occupies the byte before the offset, so the distance
    measured from the instruction itself must lie in -126..129; the
    encoded byte is that distance minus 2.
    """

    def __init__(
        self,
        target: str,
        offset: int,
        location: Optional[SourceLocation] = None,
        message: Optional[str] = None,
    ):
        self.target = target
        self.offset = offset

        direction = "forward" if offset > 0 else "backward"
        hint = (
            f"jump distance is {offset}, but range is -126 to +129; "
            f"consider an absolute jump for {direction} references"
        )

        super().__init__(
            message or f"{target} is too far from JR instruction: {offset} bytes",
            offset,
            location=location,
            hint=hint,
        )


class UndefinedSymbolError(AssemblerError):
    """
    Reference to a label that was never declared.

    Reported once per name after the final pass. Similar known names are
    offered as a hint to catch typos.
    """

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        similar_symbols: Optional[list[str]] = None,
    ):
        self.symbol = symbol
        self.similar_symbols = similar_symbols or []

        if not hint and self.similar_symbols:
            suggestions = ", ".join(f"'{s}'" for s in self.similar_symbols[:3])
            hint = f"did you mean {suggestions}?"

        super().__init__(
            f"undefined symbol '{symbol}'",
            location=location,
            hint=hint,
        )


class DuplicateSymbolError(AssemblerError):
    """
    Label declared more than once in the same pass.

    Only raised in strict mode; by default the later declaration wins
    and a warning is recorded instead.
    """

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        original_location: Optional[SourceLocation] = None,
    ):
        self.symbol = symbol
        self.original_location = original_location

        hint = None
        if original_location:
            hint = f"'{symbol}' was first defined at {original_location}"

        super().__init__(
            f"duplicate symbol '{symbol}'",
            location=location,
            hint=hint,
        )


class ConvergenceError(AssemblerError):
    """
    The sizing passes never reached a fixed point.

    Label addresses kept changing from one pass to the next, typically
    because a block length depends on a label placed after the block.
    """

    def __init__(self, passes: int):
        self.passes = passes
        super().__init__(
            f"label values did not converge after {passes} passes",
            hint="check for block sizes that depend on labels declared after them",
        )


class ProgramFormatError(AssemblerError):
    """
    Malformed program description.

    Raised by the program loader when a JSON document does not describe
    valid statements, elements or expressions.
    """
    pass


# =============================================================================
# Error Collection for Multiple Error Reporting
# =============================================================================

class ErrorCollector:
    """
    Collects multiple errors for batch reporting.

    The code generator uses this to keep generating after an element
    fails, so a single run reports every problem in the program.

    Example:
        collector = ErrorCollector(max_errors=100)

        try:
            for element in elements:
                try:
                    element.generate(symbols, pc)
                except AssemblerError as e:
                    collector.add(e)
        except TooManyErrors:
            pass  # Already collected max_errors

        if collector.has_errors():
            print(collector.report())
    """

    def __init__(self, max_errors: int = 100):
        """
        Initialize the error collector.

        Args:
            max_errors: Maximum errors to collect before raising TooManyErrors
        """
        self.errors: list[AssemblerError] = []
        self.warnings: list[str] = []
        self.max_errors = max_errors

    def add(self, error: AssemblerError) -> None:
        """
        Add an error to the collection.

        Raises:
            TooManyErrors: If max_errors has been reached
        """
        self.errors.append(error)
        if len(self.errors) >= self.max_errors:
            raise TooManyErrors(f"too many errors ({self.max_errors}), stopping")

    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)

    def has_errors(self) -> bool:
        """Return True if any errors have been collected."""
        return len(self.errors) > 0

    def error_count(self) -> int:
        """Return the number of collected errors."""
        return len(self.errors)

    def warning_count(self) -> int:
        """Return the number of collected warnings."""
        return len(self.warnings)

    def report(self) -> str:
        """
        Format all errors and warnings for display.

        Returns:
            Formatted string with all errors and warnings
        """
        lines = []

        for error in self.errors:
            lines.append(str(error))
            lines.append("")

        if self.warnings:
            lines.append("Warnings:")
            for warning in self.warnings:
                lines.append(f"  {warning}")

        error_word = "error" if len(self.errors) == 1 else "errors"
        warning_word = "warning" if len(self.warnings) == 1 else "warnings"
        lines.append(
            f"\n{len(self.errors)} {error_word}, {len(self.warnings)} {warning_word}"
        )

        return "\n".join(lines)

    def clear(self) -> None:
        """Clear all collected errors and warnings."""
        self.errors.clear()
        self.warnings.clear()


class TooManyErrors(AssemblerError):
    """
    Raised when too many errors have been encountered.

    Stops a run whose program is fundamentally broken from producing an
    unbounded report.
    """

    def __init__(self, message: str = "too many errors"):
        super().__init__(message)
