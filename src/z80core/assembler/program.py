"""
Program Statements and Loader
=============================

This module defines the statements the code generator consumes, and a
loader that builds them from a JSON description of an already-parsed
program. It does not read assembly source text: the JSON document is the
AST a front end produced, one object per statement.

Statement Types
---------------
1. **LabelDef**: label at the current address
   ```json
   {"label": "loop"}
   ```

2. **EquateDef**: label bound to an expression
   ```json
   {"equate": "size", "expr": {"op": "-", "args": ["end", "start"]}}
   ```

3. **OrgDirective**: set the program counter
   ```json
   {"org": 32768}
   ```

4. **Instruction**: the AST elements of one source line
   ```json
   {"instruction": [24, {"kind": "jr_label", "label": "loop"}]}
   ```

Every statement may carry "line" and "column" for diagnostics.

Expressions
-----------
| JSON                                  | Node                          |
|---------------------------------------|-------------------------------|
| 42                                    | Literal                       |
| "$"                                   | CurrentAddress                |
| "name"                                | LabelRef                      |
| {"op": "+", "args": [a, b, c]}        | BinaryOp, folded left         |
| {"op": "neg" / "not" / "plus", "arg"} | UnaryOp                       |

Elements
--------
| JSON                                                 | Element           |
|------------------------------------------------------|-------------------|
| 0..255                                               | ConcreteByte      |
| {"kind": "value8", "expr": e}                        | Value8            |
| {"kind": "neg8", "expr": e}                          | NegatedValue8     |
| {"kind": "value16", "expr": e}                       | Value16           |
| {"kind": "jr", "expr": e}                            | BranchOffset      |
| {"kind": "jr_label", "label": name}                  | LabelBranchOffset |
| {"kind": "block", "length": e, "value": e (optional)} | ByteBlock        |
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union
import json

from z80core.errors import ProgramFormatError, SourceLocation
from z80core.assembler.ast import (
    AstElement,
    ConcreteByte,
    data_block,
    index_offset,
    jr_offset,
    jr_relative_offset,
    value8,
    value16_le,
)
from z80core.assembler.expressions import (
    BinaryOperator,
    CurrentAddress,
    Expression,
    LabelRef,
    Literal,
    UnaryOp,
    UnaryOperator,
    fold_left,
)


# =============================================================================
# Statements
# =============================================================================

@dataclass
class LabelDef:
    """A label at the current program counter."""
    name: str
    location: Optional[SourceLocation] = None


@dataclass
class EquateDef:
    """A label defined by an expression (EQU)."""
    name: str
    expression: Expression
    location: Optional[SourceLocation] = None


@dataclass
class OrgDirective:
    """Set the program counter (ORG)."""
    expression: Expression
    location: Optional[SourceLocation] = None


@dataclass
class Instruction:
    """
    The AST elements of one source line.

    Every element receives the address of the line's first byte as its
    program counter, which is also the value of $ on that line.
    """
    elements: list[AstElement] = field(default_factory=list)
    location: Optional[SourceLocation] = None


Statement = Union[LabelDef, EquateDef, OrgDirective, Instruction]


# =============================================================================
# JSON Loader
# =============================================================================

_UNARY_NAMES = {
    "neg": UnaryOperator.NEGATE,
    "not": UnaryOperator.BITWISE_NOT,
    "plus": UnaryOperator.PLUS,
}

_SINGLE_EXPRESSION_KINDS = {
    "value8": value8,
    "value16": value16_le,
    "jr": jr_offset,
}


class ProgramLoader:
    """
    Builds statements from a decoded JSON document.

    The document is either a list of statements or an object with a
    "statements" list. Errors name the statement that is malformed.
    """

    def __init__(self, filename: str = "<input>"):
        self._filename = filename

    def load(self, document: Any) -> list[Statement]:
        if isinstance(document, dict):
            document = document.get("statements")
        if not isinstance(document, list):
            raise ProgramFormatError(
                "program must be a list of statements",
                SourceLocation(self._filename, 1, 1),
            )
        return [self._statement(item, index) for index, item in enumerate(document)]

    # =========================================================================
    # Statements
    # =========================================================================

    def _statement(self, item: Any, index: int) -> Statement:
        if not isinstance(item, dict):
            raise ProgramFormatError(f"statement {index} must be an object", self._fallback(index))

        location = self._location(item, index)

        if "label" in item:
            return LabelDef(self._name(item["label"], location), location)
        if "equate" in item:
            name = self._name(item["equate"], location)
            return EquateDef(name, self._expression(self._require(item, "expr", location), location), location)
        if "org" in item:
            return OrgDirective(self._expression(item["org"], location), location)
        if "instruction" in item:
            elements = item["instruction"]
            if not isinstance(elements, list):
                raise ProgramFormatError("instruction must be a list of elements", location)
            return Instruction([self._element(e, location) for e in elements], location)

        raise ProgramFormatError(
            "unknown statement (expected label, equate, org or instruction)", location
        )

    def _location(self, item: dict, index: int) -> SourceLocation:
        line = item.get("line", index + 1)
        column = item.get("column", 1)
        if not isinstance(line, int) or not isinstance(column, int):
            raise ProgramFormatError("line and column must be integers", self._fallback(index))
        return SourceLocation(self._filename, line, column)

    def _fallback(self, index: int) -> SourceLocation:
        return SourceLocation(self._filename, index + 1, 1)

    @staticmethod
    def _name(value: Any, location: SourceLocation) -> str:
        if not isinstance(value, str) or not value:
            raise ProgramFormatError(f"invalid label name: {value!r}", location)
        return value

    @staticmethod
    def _require(item: dict, key: str, location: SourceLocation) -> Any:
        if key not in item:
            raise ProgramFormatError(f"missing '{key}'", location)
        return item[key]

    # =========================================================================
    # Elements
    # =========================================================================

    def _element(self, item: Any, location: SourceLocation) -> AstElement:
        if isinstance(item, int) and not isinstance(item, bool):
            if not 0 <= item <= 0xFF:
                raise ProgramFormatError(f"byte out of range: {item}", location)
            return ConcreteByte(item)
        if not isinstance(item, dict):
            raise ProgramFormatError(f"invalid element: {item!r}", location)

        kind = item.get("kind")
        if kind in _SINGLE_EXPRESSION_KINDS:
            expression = self._expression(self._require(item, "expr", location), location)
            return _SINGLE_EXPRESSION_KINDS[kind](expression, location)
        if kind == "neg8":
            expression = self._expression(self._require(item, "expr", location), location)
            return index_offset("-", expression, location)
        if kind == "jr_label":
            return jr_relative_offset(self._name(self._require(item, "label", location), location), location)
        if kind == "block":
            length = self._expression(self._require(item, "length", location), location)
            value = None
            if item.get("value") is not None:
                value = self._expression(item["value"], location)
            return data_block(length, location, value, location if value is not None else None)

        raise ProgramFormatError(f"unknown element kind: {kind!r}", location)

    # =========================================================================
    # Expressions
    # =========================================================================

    def _expression(self, item: Any, location: SourceLocation) -> Expression:
        if isinstance(item, bool):
            raise ProgramFormatError(f"invalid expression: {item!r}", location)
        if isinstance(item, int):
            return Literal(item)
        if isinstance(item, str):
            if item == "$":
                return CurrentAddress()
            return LabelRef(self._name(item, location), location)
        if not isinstance(item, dict) or "op" not in item:
            raise ProgramFormatError(f"invalid expression: {item!r}", location)

        op = item["op"]
        if op in _UNARY_NAMES:
            operand = self._expression(self._require(item, "arg", location), location)
            return UnaryOp(_UNARY_NAMES[op], operand)

        try:
            operator = BinaryOperator(op)
        except ValueError:
            raise ProgramFormatError(f"unknown operator: {op!r}", location) from None

        args = item.get("args")
        if not isinstance(args, list) or len(args) < 2:
            raise ProgramFormatError(f"operator '{op}' needs at least two args", location)
        operands = [self._expression(arg, location) for arg in args]
        return fold_left(operands[0], [(operator, operand) for operand in operands[1:]])


def parse_program(document: Any, filename: str = "<input>") -> list[Statement]:
    """
    Build statements from a decoded JSON document.

    Raises:
        ProgramFormatError: If the document is malformed
    """
    return ProgramLoader(filename).load(document)


def load_program(filepath: str | Path) -> list[Statement]:
    """
    Read a JSON program file.

    Raises:
        ProgramFormatError: If the file is not valid JSON or is malformed
        FileNotFoundError: If the file does not exist
    """
    filepath = Path(filepath)
    try:
        document = json.loads(filepath.read_text())
    except json.JSONDecodeError as e:
        raise ProgramFormatError(
            f"invalid JSON: {e.msg}",
            SourceLocation(str(filepath), e.lineno, e.colno),
        ) from e
    return parse_program(document, str(filepath))
