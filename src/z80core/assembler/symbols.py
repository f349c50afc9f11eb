"""
Assembler Symbol Table
======================

This module holds the labels of one compilation run and resolves them
lazily, across as many passes as the code generator needs.

A label is declared in one of two ways:

1. **Direct value** (declare_value): a code label at a known (or not yet
   known) address. Every declaration rebinds the value.
2. **Expression** (declare_expression): an equate. The expression is kept
   and evaluated on demand by resolve(); the first successful result is
   cached and never changes for the rest of the run.

Forward References
------------------
resolve() never fails. Reading a label that has not been declared yet
creates an unknown placeholder and returns None; a later pass retries.
After the final pass, unresolved_names() lists the labels that were read
but never given a value or an expression.

Lifecycle
---------
One SymbolTable per code generator. reset() is called once at the start
of each run so nothing leaks from one compilation to the next. The table
is not thread-safe.
"""

from dataclasses import dataclass
from typing import Iterator, Optional, TYPE_CHECKING
import logging

from z80core.errors import SourceLocation

if TYPE_CHECKING:
    from z80core.assembler.expressions import Expression

logger = logging.getLogger(__name__)


# =============================================================================
# Label Entry
# =============================================================================

@dataclass
class Label:
    """
    Symbol table entry.

    Attributes:
        expression: Deferred expression for equates, None for direct values
        value: Last known value (authoritative only when known is True)
        known: Whether value is authoritative
        used: Whether any expression ever tried to read this label
        pc: Program counter at the equate, used to evaluate $ in expression
        location: Where the label was last declared
    """
    expression: Optional["Expression"] = None
    value: int = 0
    known: bool = False
    used: bool = False
    pc: Optional[int] = None
    location: Optional[SourceLocation] = None


# =============================================================================
# Symbol Table
# =============================================================================

class SymbolTable:
    """
    Mapping from label name (case-sensitive) to Label.

    Usage:
        symbols = SymbolTable()
        symbols.reset()
        symbols.declare_value("start", 0x8000)
        symbols.declare_expression("end", expr)
        symbols.resolve("end")
    """

    def __init__(self):
        self._labels: dict[str, Label] = {}
        # Labels whose expression is being evaluated right now
        self._resolving: set[str] = set()

    def reset(self) -> None:
        """Forget every label. Called once per compilation run."""
        self._labels.clear()
        self._resolving.clear()

    # =========================================================================
    # Declarations
    # =========================================================================

    def declare_value(
        self,
        name: str,
        value: Optional[int],
        location: Optional[SourceLocation] = None,
    ) -> None:
        """
        Bind a label to a direct value.

        The latest declaration always wins, whether or not the label was
        already known. A stored expression is left untouched.

        Args:
            name: Label name
            value: The value, or None if it is not known yet (for example a
                label placed after code whose size is still unknown)
            location: Where the label is declared
        """
        label = self._labels.get(name)
        if label is None:
            label = Label()
            self._labels[name] = label

        label.value = value if value is not None else 0
        label.known = value is not None
        if location is not None:
            label.location = location

    def declare_expression(
        self,
        name: str,
        expression: "Expression",
        pc: Optional[int] = None,
        location: Optional[SourceLocation] = None,
    ) -> None:
        """
        Bind a label to a deferred expression (an equate).

        If the label is already known, by a direct value or an earlier
        resolution, the declaration is ignored. Otherwise the expression
        replaces any previous unresolved one.

        Args:
            name: Label name
            expression: The expression defining the label
            pc: Program counter at the declaration ($ in the expression)
            location: Where the label is declared
        """
        label = self._labels.get(name)
        if label is None:
            self._labels[name] = Label(expression=expression, pc=pc, location=location)
            return

        if label.known:
            return

        label.expression = expression
        label.pc = pc
        if location is not None:
            label.location = location

    # =========================================================================
    # Resolution
    # =========================================================================

    def resolve(
        self,
        name: str,
        location: Optional[SourceLocation] = None,
    ) -> Optional[int]:
        """
        Return the value of a label, or None if it cannot be known yet.

        Marks the label as used (creating a placeholder for a forward
        reference). An equate's expression is evaluated on demand and its
        first successful value is cached.

        Args:
            name: Label name
            location: Where the label is read; a placeholder keeps the first
                one so an undefined symbol can be reported there
        """
        label = self._labels.get(name)
        if label is None:
            self._labels[name] = Label(used=True, location=location)
            return None

        label.used = True
        if label.known:
            return label.value
        if label.expression is None:
            return None

        # A circular equate reaches itself again: unknown, not recursion
        if name in self._resolving:
            return None

        self._resolving.add(name)
        try:
            value = label.expression.evaluate(self, label.pc, False)
        finally:
            self._resolving.discard(name)

        if value is None:
            return None

        label.value = value
        label.known = True
        logger.debug(f"equate '{name}' = {value} ({label.expression})")
        return value

    def unresolved_names(self) -> set[str]:
        """
        Names that are neither known nor backed by an expression.

        After the final pass these are the undefined symbols: labels that
        were only ever read, or only declared with an unknown value.
        """
        return {
            name for name, label in self._labels.items()
            if not label.known and label.expression is None
        }

    # =========================================================================
    # Inspection
    # =========================================================================

    def get(self, name: str) -> Optional[Label]:
        """Return the entry for a label, without marking it used."""
        return self._labels.get(name)

    def names(self) -> Iterator[str]:
        """Iterate over label names in declaration order."""
        return iter(self._labels)

    def known_values(self) -> dict[str, int]:
        """Snapshot of every known label and its value."""
        return {
            name: label.value for name, label in self._labels.items()
            if label.known
        }

    def __contains__(self, name: str) -> bool:
        return name in self._labels

    def __len__(self) -> int:
        return len(self._labels)

    def find_similar(self, name: str) -> list[str]:
        """
        Find known labels with similar names for error hints.

        Uses simple edit distance heuristic.
        """
        name_lower = name.lower()
        similar = []

        for sym, label in self._labels.items():
            if sym == name or not label.known:
                continue
            sym_lower = sym.lower()
            if (
                sym_lower == name_lower or
                abs(len(sym) - len(name)) <= 1 and
                _edit_distance(name_lower, sym_lower) <= 2
            ):
                similar.append(sym)

        return similar[:3]


def _edit_distance(s1: str, s2: str) -> int:
    """Calculate Levenshtein edit distance between two strings."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1

    distances = range(len(s2) + 1)
    for i, c1 in enumerate(s1):
        new_distances = [i + 1]
        for j, c2 in enumerate(s2):
            if c1 == c2:
                new_distances.append(distances[j])
            else:
                new_distances.append(1 + min((
                    distances[j],
                    distances[j + 1],
                    new_distances[-1]
                )))
        distances = new_distances

    return distances[-1]
