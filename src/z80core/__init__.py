"""
z80core - Assembler Back End for an 8-bit CPU
=============================================

This package is the half of a two-pass assembler that comes after parsing:
it resolves labels and expressions whose values depend on addresses not yet
known, iterates passes until every value settles, and emits bit-exact
machine code (little-endian words, two's-complement bytes, biased relative
jump offsets) with precise range checking.

Main Components
---------------
- **assembler**: symbol table, expression trees, AST byte emitters and the
  multi-pass CodeGenerator
- **config**: AssemblerConfig (origin, pass limit, error limit, strictness)
- **errors**: exception hierarchy with source locations
- **cli**: the z80emit command-line tool

Quick Start
-----------
>>> from z80core import CodeGenerator
>>> from z80core.assembler import Instruction, LabelDef, ConcreteByte, jr_relative_offset
>>> codegen = CodeGenerator()
>>> code = codegen.generate([
...     LabelDef("loop"),
...     Instruction([ConcreteByte(0x18), jr_relative_offset("loop")]),
... ])

Or use the command-line tool on a JSON program:
    $ z80emit program.json -o program.bin -s program.sym
"""

__version__ = "1.0.0"

from z80core.assembler import CodeGenerator, SymbolTable, assemble
from z80core.config import AssemblerConfig
from z80core.errors import (
    Z80Error,
    SourceLocation,
    AssemblerError,
    UnresolvedValueError,
    ValueRangeError,
    BranchRangeError,
    UndefinedSymbolError,
    DuplicateSymbolError,
    ConvergenceError,
    ProgramFormatError,
    ErrorCollector,
    TooManyErrors,
)

__all__ = [
    # Version info
    "__version__",
    # Code generation
    "CodeGenerator",
    "SymbolTable",
    "assemble",
    "AssemblerConfig",
    # Exception hierarchy
    "Z80Error",
    "SourceLocation",
    "AssemblerError",
    "UnresolvedValueError",
    "ValueRangeError",
    "BranchRangeError",
    "UndefinedSymbolError",
    "DuplicateSymbolError",
    "ConvergenceError",
    "ProgramFormatError",
    "ErrorCollector",
    "TooManyErrors",
]
