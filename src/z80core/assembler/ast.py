"""
AST Byte Emitters
=================

The parser turns each source line into a list of AST elements. An element
is either a byte whose value is already known (ConcreteByte) or an Emitter
whose bytes depend on expressions that may not be resolvable until the
final pass.

Emitters
--------
| Class             | Size      | Encoding                                   |
|-------------------|-----------|--------------------------------------------|
| ByteBlock         | length    | fill byte repeated (8-bit rule)            |
| Value16           | 2         | little-endian, -65536..65535               |
| Value8            | 1         | -256..255, negatives as two's complement   |
| NegatedValue8     | 1         | value negated, then the Value8 rule        |
| BranchOffset      | 1         | distance -126..129, encoded distance - 2   |
| LabelBranchOffset | 1         | label - pc, then the BranchOffset rule     |

size() may be asked on every pass. generate() runs once, in the final
pass, and raises UnresolvedValueError or ValueRangeError (positioned at
the offending expression) instead of clamping or truncating.

Jump Offsets
------------
A relative jump is a one-byte opcode followed by the offset byte, and the
CPU measures the offset from the end of the instruction. The distance the
programmer writes is measured from the instruction itself, so it is
range-checked as written (-126..129) and then biased by -2:

    JR target          ; target = pc + 2  ->  distance 2  ->  byte $00
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Union

from z80core.errors import (
    SourceLocation,
    UnresolvedValueError,
    ValueRangeError,
    BranchRangeError,
)
from z80core.assembler.expressions import Expression
from z80core.assembler.symbols import SymbolTable


# =============================================================================
# Encoding Limits
# =============================================================================

BYTE_MIN = -256
BYTE_MAX = 255
WORD_MIN = -65536
WORD_MAX = 65535
JR_DISTANCE_MIN = -126
JR_DISTANCE_MAX = 129
JR_INSTRUCTION_LENGTH = 2


def low(value: int) -> int:
    """Low byte of a 16-bit little-endian value."""
    return value & 0x00FF


def high(value: int) -> int:
    """High byte of a 16-bit little-endian value."""
    return (value & 0xFF00) >> 8


def _encode_byte(value: int, location: Optional[SourceLocation]) -> int:
    if value < BYTE_MIN or value > BYTE_MAX:
        raise ValueRangeError(f"invalid 8-bits value: {value}", value, location)
    # Negative values are stored as their two's complement
    if value < 0:
        value += 256
    return value


def _encode_jr_distance(distance: int) -> int:
    distance -= JR_INSTRUCTION_LENGTH
    if distance < 0:
        distance += 256
    return distance


# =============================================================================
# Element Types
# =============================================================================

@dataclass(frozen=True)
class ConcreteByte:
    """A byte already known at parse time (an opcode, a prefix, a constant)."""
    value: int

    def __post_init__(self):
        if not 0 <= self.value <= 0xFF:
            raise ValueError(f"concrete byte out of range: {self.value}")


class Emitter(ABC):
    """
    Base class for elements whose bytes are computed from expressions.

    Each emitter keeps the source position of its expression so that
    errors raised during the final pass point at the right place.
    """

    @abstractmethod
    def size(self, symbols: SymbolTable) -> int:
        """The number of bytes that generate() will produce."""
        pass

    @abstractmethod
    def generate(self, symbols: SymbolTable, pc: Optional[int]) -> bytes:
        """
        Produce the final bytes.

        Args:
            symbols: Symbol table of the current run
            pc: Address of the instruction this element belongs to

        Raises:
            UnresolvedValueError: If a needed value is still unknown
            ValueRangeError: If a value does not fit its encoding
        """
        pass


AstElement = Union[ConcreteByte, Emitter]


class ByteBlock(Emitter):
    """
    A block of identical bytes (DS/BLOCK-style directives).

    Both the length and the fill value are expressions. The length must
    be known whenever size() is asked, since it moves every later label.
    """

    def __init__(
        self,
        length: Expression,
        length_location: Optional[SourceLocation] = None,
        value: Optional[Expression] = None,
        value_location: Optional[SourceLocation] = None,
    ):
        self.length = length
        self.length_location = length_location
        self.value = value
        self.value_location = value_location

    def size(self, symbols: SymbolTable) -> int:
        size = self.length.evaluate(symbols, None, True)
        if size is None:
            raise UnresolvedValueError("unknown size for the data block", self.length_location)
        if size < 0:
            raise ValueRangeError(
                f"invalid size for the data block: {size}", size, self.length_location
            )
        return size

    def _fill_value(self, symbols: SymbolTable, pc: Optional[int]) -> int:
        if self.value is None:
            return 0
        value = self.value.evaluate(symbols, pc, True)
        if value is None:
            raise UnresolvedValueError("not able to determine a value", self.value_location)
        return _encode_byte(value, self.value_location)

    def generate(self, symbols: SymbolTable, pc: Optional[int]) -> bytes:
        return bytes([self._fill_value(symbols, pc)]) * self.size(symbols)

    def __repr__(self) -> str:
        return f"ByteBlock({self.length}, {self.value})"


class Value16(Emitter):
    """A 16-bit value, emitted low byte first."""

    def __init__(self, expression: Expression, location: Optional[SourceLocation] = None):
        self.expression = expression
        self.location = location

    def size(self, symbols: SymbolTable) -> int:
        return 2

    def generate(self, symbols: SymbolTable, pc: Optional[int]) -> bytes:
        value = self.expression.evaluate(symbols, pc, True)
        if value is None:
            raise UnresolvedValueError("not able to determine the 16-bits value", self.location)
        if value < WORD_MIN or value > WORD_MAX:
            raise ValueRangeError(f"invalid 16-bits value: {value}", value, self.location)
        if value < 0:
            value += 65536
        return bytes([low(value), high(value)])

    def __repr__(self) -> str:
        return f"Value16({self.expression})"


class Value8(Emitter):
    """An 8-bit value, signed or unsigned."""

    def __init__(self, expression: Expression, location: Optional[SourceLocation] = None):
        self.expression = expression
        self.location = location

    def size(self, symbols: SymbolTable) -> int:
        return 1

    def _value(self, symbols: SymbolTable, pc: Optional[int]) -> int:
        value = self.expression.evaluate(symbols, pc, True)
        if value is None:
            raise UnresolvedValueError("not able to determine the 8-bits value", self.location)
        return value

    def generate(self, symbols: SymbolTable, pc: Optional[int]) -> bytes:
        return bytes([_encode_byte(self._value(symbols, pc), self.location)])

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.expression})"


class NegatedValue8(Value8):
    """
    The opposite of an 8-bit value.

    Used for index displacements written with a minus sign, as in
    (IX-d): the parser keeps d and the sign separately.
    """

    def generate(self, symbols: SymbolTable, pc: Optional[int]) -> bytes:
        return bytes([_encode_byte(-self._value(symbols, pc), self.location)])


class BranchOffset(Emitter):
    """Offset of a relative jump, given as a distance from the instruction."""

    def __init__(self, expression: Expression, location: Optional[SourceLocation] = None):
        self.expression = expression
        self.location = location

    def size(self, symbols: SymbolTable) -> int:
        return 1

    def generate(self, symbols: SymbolTable, pc: Optional[int]) -> bytes:
        distance = self.expression.evaluate(symbols, pc, True)
        if distance is None:
            raise UnresolvedValueError("not able to determine the offset value", self.location)
        if distance < JR_DISTANCE_MIN or distance > JR_DISTANCE_MAX:
            raise BranchRangeError(
                str(self.expression),
                distance,
                self.location,
                message=f"invalid offset for JR instruction: {distance}",
            )
        return bytes([_encode_jr_distance(distance)])

    def __repr__(self) -> str:
        return f"BranchOffset({self.expression})"


class LabelBranchOffset(Emitter):
    """Offset of a relative jump to a label: label address minus pc."""

    def __init__(self, label: str, location: Optional[SourceLocation] = None):
        self.label = label
        self.location = location

    def size(self, symbols: SymbolTable) -> int:
        return 1

    def generate(self, symbols: SymbolTable, pc: Optional[int]) -> bytes:
        if pc is None:
            raise UnresolvedValueError("not able to determine PC value", self.location)
        target = symbols.resolve(self.label, self.location)
        if target is None:
            raise UnresolvedValueError(
                f"not able to determine the value of label '{self.label}'", self.location
            )
        distance = target - pc
        if distance < JR_DISTANCE_MIN or distance > JR_DISTANCE_MAX:
            raise BranchRangeError(f"label {self.label}", distance, self.location)
        return bytes([_encode_jr_distance(distance)])

    def __repr__(self) -> str:
        return f"LabelBranchOffset({self.label!r})"


# =============================================================================
# Element Dispatch
# =============================================================================

def element_size(symbols: SymbolTable, element: AstElement) -> int:
    """Number of bytes an element will generate."""
    if isinstance(element, ConcreteByte):
        return 1
    return element.size(symbols)


def generate_element(symbols: SymbolTable, element: AstElement, pc: Optional[int]) -> bytes:
    """Final bytes of an element."""
    if isinstance(element, ConcreteByte):
        return bytes([element.value])
    return element.generate(symbols, pc)


# =============================================================================
# Builders
# =============================================================================
# These are the actions the grammar calls when it recognizes an operand.
# =============================================================================

def value16_le(expression: Expression, location: Optional[SourceLocation] = None) -> AstElement:
    """A 16-bit little-endian operand (nn)."""
    return Value16(expression, location)


def value8(expression: Expression, location: Optional[SourceLocation] = None) -> AstElement:
    """An 8-bit operand (n)."""
    return Value8(expression, location)


def index_offset(
    sign: Optional[str],
    expression: Optional[Expression],
    location: Optional[SourceLocation] = None,
) -> AstElement:
    """
    The displacement of an indexed operand such as (IX+d) or (IY-d).

    A missing displacement, as in (IX), is a zero byte.
    """
    if expression is None:
        return ConcreteByte(0)
    if sign == "-":
        return NegatedValue8(expression, location)
    return Value8(expression, location)


def jr_offset(expression: Expression, location: Optional[SourceLocation] = None) -> AstElement:
    """A relative jump written as an explicit distance (JR $+5)."""
    return BranchOffset(expression, location)


def jr_relative_offset(label: str, location: Optional[SourceLocation] = None) -> AstElement:
    """A relative jump to a label (JR loop)."""
    return LabelBranchOffset(label, location)


def data_block(
    length: Expression,
    length_location: Optional[SourceLocation] = None,
    value: Optional[Expression] = None,
    value_location: Optional[SourceLocation] = None,
) -> AstElement:
    """A block of length bytes filled with value (0 by default)."""
    return ByteBlock(length, length_location, value, value_location)
