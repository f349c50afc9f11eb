"""
Assembler Back End
==================

This package resolves labels and expressions across repeated passes and
emits the machine-code bytes of an already-parsed program.

Main Components
---------------
- **SymbolTable**: labels, with lazy and memoized resolution
- **Expression nodes**: Literal, LabelRef, CurrentAddress, UnaryOp, BinaryOp
- **AST emitters**: ByteBlock, Value16, Value8, NegatedValue8,
  BranchOffset, LabelBranchOffset
- **CodeGenerator**: multi-pass driver producing the final bytes
- **ProgramLoader**: builds statements from a JSON program description

Process
-------
1. Sizing passes: declare labels, advance the program counter by element
   sizes, repeat until no known label changes
2. Final pass: generate every element's bytes, collecting errors
3. Report labels that were never declared

Example Usage
-------------
>>> from z80core.assembler import CodeGenerator, Instruction, LabelDef
>>> from z80core.assembler import ConcreteByte, LabelRef, value16_le
>>> codegen = CodeGenerator()
>>> codegen.generate([
...     Instruction([ConcreteByte(0xC3), value16_le(LabelRef("start"))]),
...     LabelDef("start"),
... ])
b'\\xc3\\x03\\x00'
"""

from z80core.assembler.symbols import Label, SymbolTable
from z80core.assembler.expressions import (
    Expression,
    Literal,
    LabelRef,
    CurrentAddress,
    UnaryOp,
    UnaryOperator,
    BinaryOp,
    BinaryOperator,
    fold_left,
)
from z80core.assembler.ast import (
    AstElement,
    ConcreteByte,
    Emitter,
    ByteBlock,
    Value16,
    Value8,
    NegatedValue8,
    BranchOffset,
    LabelBranchOffset,
    element_size,
    generate_element,
    value16_le,
    value8,
    index_offset,
    jr_offset,
    jr_relative_offset,
    data_block,
    low,
    high,
)
from z80core.assembler.program import (
    Statement,
    LabelDef,
    EquateDef,
    OrgDirective,
    Instruction,
    ProgramLoader,
    parse_program,
    load_program,
)
from z80core.assembler.codegen import CodeGenerator, EmittedChunk, assemble

__all__ = [
    # Symbol table
    "Label",
    "SymbolTable",
    # Expressions
    "Expression",
    "Literal",
    "LabelRef",
    "CurrentAddress",
    "UnaryOp",
    "UnaryOperator",
    "BinaryOp",
    "BinaryOperator",
    "fold_left",
    # AST elements
    "AstElement",
    "ConcreteByte",
    "Emitter",
    "ByteBlock",
    "Value16",
    "Value8",
    "NegatedValue8",
    "BranchOffset",
    "LabelBranchOffset",
    "element_size",
    "generate_element",
    "value16_le",
    "value8",
    "index_offset",
    "jr_offset",
    "jr_relative_offset",
    "data_block",
    "low",
    "high",
    # Statements and loader
    "Statement",
    "LabelDef",
    "EquateDef",
    "OrgDirective",
    "Instruction",
    "ProgramLoader",
    "parse_program",
    "load_program",
    # Code generator
    "CodeGenerator",
    "EmittedChunk",
    "assemble",
]
