"""
Assembly Expression Trees
=========================

This module implements the expression trees that appear in operands and
directive arguments. Each tree is built once by the parser and evaluated
any number of times, on every pass, against the current symbol table and
program counter.

Node Types
----------
- **Literal**: a fixed number
- **LabelRef**: a label, resolved through the SymbolTable
- **CurrentAddress**: the program counter ($)
- **UnaryOp**: - ~ +
- **BinaryOp**: + - * / % & | ^ << >>

Unknown Values
--------------
Every node's evaluate() returns either an integer or None. None means
"not known yet" (a forward reference, an unknown program counter) and
propagates through every operator. It is an ordinary outcome during the
early passes; only the AST emitters turn it into an error, during the
final pass.

Arithmetic
----------
- Division truncates toward zero; remainder takes the sign of the dividend.
- Bitwise operators and shifts work on 32-bit two's-complement values,
  and shift counts use their low five bits.
- Division or remainder by zero evaluates to None.

Example Usage
-------------
>>> from z80core.assembler.expressions import BinaryOp, BinaryOperator, LabelRef, Literal
>>> from z80core.assembler.symbols import SymbolTable
>>> symbols = SymbolTable()
>>> symbols.declare_value("buffer", 0x1000)
>>> expr = BinaryOp(BinaryOperator.ADD, LabelRef("buffer"), Literal(10))
>>> expr.evaluate(symbols, pc=0x8000)
4106
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, TYPE_CHECKING
import logging

from z80core.errors import SourceLocation

if TYPE_CHECKING:
    from z80core.assembler.symbols import SymbolTable

logger = logging.getLogger(__name__)


# =============================================================================
# Operators
# =============================================================================

class UnaryOperator(Enum):
    """Unary operator types, valued by their assembler spelling."""
    NEGATE = "-"        # -x
    BITWISE_NOT = "~"   # ~x
    PLUS = "+"          # +x (no-op)


class BinaryOperator(Enum):
    """Binary operator types, valued by their assembler spelling."""
    # Arithmetic
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    MODULO = "%"

    # Bitwise
    BITWISE_AND = "&"
    BITWISE_OR = "|"
    BITWISE_XOR = "^"
    LEFT_SHIFT = "<<"
    RIGHT_SHIFT = ">>"


def _int32(value: int) -> int:
    """Wrap a value to a signed 32-bit integer."""
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _divide(a: int, b: int) -> Optional[int]:
    if b == 0:
        return None
    quotient = abs(a) // abs(b)
    return -quotient if (a < 0) != (b < 0) else quotient


def _modulo(a: int, b: int) -> Optional[int]:
    quotient = _divide(a, b)
    return None if quotient is None else a - b * quotient


_UNARY_FUNCTIONS = {
    UnaryOperator.NEGATE: lambda a: -a,
    UnaryOperator.BITWISE_NOT: lambda a: ~_int32(a),
    UnaryOperator.PLUS: lambda a: a,
}

_BINARY_FUNCTIONS = {
    BinaryOperator.ADD: lambda a, b: a + b,
    BinaryOperator.SUBTRACT: lambda a, b: a - b,
    BinaryOperator.MULTIPLY: lambda a, b: a * b,
    BinaryOperator.DIVIDE: _divide,
    BinaryOperator.MODULO: _modulo,
    BinaryOperator.BITWISE_AND: lambda a, b: _int32(a) & _int32(b),
    BinaryOperator.BITWISE_OR: lambda a, b: _int32(a) | _int32(b),
    BinaryOperator.BITWISE_XOR: lambda a, b: _int32(a) ^ _int32(b),
    BinaryOperator.LEFT_SHIFT: lambda a, b: _int32(_int32(a) << (b & 0x1F)),
    BinaryOperator.RIGHT_SHIFT: lambda a, b: _int32(a) >> (b & 0x1F),
}


# =============================================================================
# Expression Nodes
# =============================================================================

class Expression(ABC):
    """
    Base class for expression tree nodes.

    Nodes are immutable once built; evaluation never changes them.
    """

    @abstractmethod
    def evaluate(
        self,
        symbols: "SymbolTable",
        pc: Optional[int],
        must_resolve: bool = False,
    ) -> Optional[int]:
        """
        Evaluate this expression.

        Args:
            symbols: Symbol table used to resolve label references
            pc: Current program counter, or None if it is not known yet
            must_resolve: True when the caller will treat None as a hard
                error (final generation); evaluation itself is unaffected

        Returns:
            The integer value, or None if some operand is not known yet
        """
        pass


@dataclass(frozen=True)
class Literal(Expression):
    """A number written directly in the source."""
    value: int

    def evaluate(self, symbols, pc, must_resolve=False):
        return self.value

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class LabelRef(Expression):
    """
    Reference to a label.

    Attributes:
        name: Label name (case-sensitive)
        location: Where the reference appears, for diagnostics
    """
    name: str
    location: Optional[SourceLocation] = None

    def evaluate(self, symbols, pc, must_resolve=False):
        value = symbols.resolve(self.name, self.location)
        if value is None and must_resolve:
            logger.debug(f"label '{self.name}' is still unresolved at {self.location}")
        return value

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class CurrentAddress(Expression):
    """The address of the current instruction ($)."""

    def evaluate(self, symbols, pc, must_resolve=False):
        return pc

    def __str__(self) -> str:
        return "$"


@dataclass(frozen=True)
class UnaryOp(Expression):
    """
    Unary operation expression (op x).

    Attributes:
        operator: The unary operator
        operand: The operand expression
    """
    operator: UnaryOperator
    operand: Expression

    def evaluate(self, symbols, pc, must_resolve=False):
        value = self.operand.evaluate(symbols, pc, must_resolve)
        if value is None:
            return None
        return _UNARY_FUNCTIONS[self.operator](value)

    def __str__(self) -> str:
        return f"{self.operator.value}{_parenthesize(self.operand)}"


@dataclass(frozen=True)
class BinaryOp(Expression):
    """
    Binary operation expression (a op b).

    Attributes:
        operator: The binary operator
        left: Left operand expression
        right: Right operand expression
    """
    operator: BinaryOperator
    left: Expression
    right: Expression

    def evaluate(self, symbols, pc, must_resolve=False):
        # Both sides are evaluated so every referenced label is marked used
        left = self.left.evaluate(symbols, pc, must_resolve)
        right = self.right.evaluate(symbols, pc, must_resolve)
        if left is None or right is None:
            return None
        result = _BINARY_FUNCTIONS[self.operator](left, right)
        if result is None:
            logger.debug(f"{self.operator.value} by zero in '{self}'")
        return result

    def __str__(self) -> str:
        return f"{self.left} {self.operator.value} {_parenthesize(self.right)}"


def _parenthesize(expression: Expression) -> str:
    if isinstance(expression, BinaryOp):
        return f"({expression})"
    return str(expression)


# =============================================================================
# Construction Helpers
# =============================================================================

def fold_left(
    first: Expression,
    rest: list[tuple[BinaryOperator, Expression]],
) -> Expression:
    """
    Build a left-associative chain of binary operations.

    This is how the grammar folds "a - b + c" into ((a - b) + c): each
    new operation wraps the subtree built so far.

    Args:
        first: The leftmost operand
        rest: (operator, operand) pairs in source order

    Returns:
        The root of the folded tree (first itself when rest is empty)
    """
    result = first
    for operator, operand in rest:
        result = BinaryOp(operator, result, operand)
    return result
