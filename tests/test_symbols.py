# =============================================================================
# test_symbols.py - Symbol Table Unit Tests
# =============================================================================
# Tests for the label symbol table.
#
# Test coverage includes:
#   - Direct value declarations and re-declaration
#   - Equates (expression declarations) and memoization
#   - Forward references and placeholders
#   - Unresolved name reporting
#   - Circular equates
# =============================================================================

import pytest

from z80core.assembler.symbols import SymbolTable
from z80core.assembler.expressions import (
    BinaryOp,
    BinaryOperator,
    CurrentAddress,
    LabelRef,
    Literal,
)


@pytest.fixture
def symbols():
    table = SymbolTable()
    table.reset()
    return table


def plus(left, right):
    return BinaryOp(BinaryOperator.ADD, left, right)


# =============================================================================
# Direct Value Tests
# =============================================================================

class TestDirectValues:
    """Test labels bound to direct values."""

    def test_declare_and_resolve(self, symbols):
        """A declared value resolves immediately."""
        symbols.declare_value("start", 0x8000)
        assert symbols.resolve("start") == 0x8000

    def test_declare_unknown_value(self, symbols):
        """Declaring None leaves the label unknown."""
        symbols.declare_value("later", None)
        label = symbols.get("later")
        assert label.known is False
        assert label.value == 0
        assert symbols.resolve("later") is None

    def test_latest_declaration_wins(self, symbols):
        """The most recent declaration determines the value."""
        symbols.declare_value("x", 1)
        symbols.declare_value("x", 2)
        symbols.declare_value("x", 3)
        assert symbols.resolve("x") == 3

    def test_redeclare_known_as_unknown(self, symbols):
        """A known label can become unknown again by direct re-declaration."""
        symbols.declare_value("x", 5)
        symbols.declare_value("x", None)
        assert symbols.resolve("x") is None

    def test_declare_value_over_pending_equate(self, symbols):
        """A direct value overrides an unresolved equate."""
        symbols.declare_expression("x", LabelRef("missing"))
        symbols.declare_value("x", 7)
        assert symbols.resolve("x") == 7

    def test_names_are_case_sensitive(self, symbols):
        """Labels differing only in case are distinct."""
        symbols.declare_value("Loop", 1)
        symbols.declare_value("loop", 2)
        assert symbols.resolve("Loop") == 1
        assert symbols.resolve("loop") == 2


# =============================================================================
# Equate Tests
# =============================================================================

class TestEquates:
    """Test labels bound to expressions."""

    def test_equate_resolves_on_demand(self, symbols):
        """An equate is evaluated when first resolved."""
        symbols.declare_value("base", 0x100)
        symbols.declare_expression("top", plus(LabelRef("base"), Literal(0x10)))
        assert symbols.get("top").known is False
        assert symbols.resolve("top") == 0x110
        assert symbols.get("top").known is True

    def test_equate_is_memoized(self, symbols):
        """Once resolved, an equate keeps its value."""
        symbols.declare_value("base", 0x100)
        symbols.declare_expression("top", plus(LabelRef("base"), Literal(1)))
        assert symbols.resolve("top") == 0x101

        symbols.declare_value("base", 0x200)
        assert symbols.resolve("top") == 0x101

    def test_equate_unresolved_is_retried(self, symbols):
        """A failed evaluation is not cached."""
        symbols.declare_expression("top", plus(LabelRef("base"), Literal(1)))
        assert symbols.resolve("top") is None

        symbols.declare_value("base", 0x10)
        assert symbols.resolve("top") == 0x11

    def test_equate_ignored_when_known(self, symbols):
        """An equate on an already known label is a no-op."""
        symbols.declare_value("x", 5)
        symbols.declare_expression("x", Literal(99))
        assert symbols.resolve("x") == 5

    def test_equate_ignored_after_resolution(self, symbols):
        """A resolved equate cannot be replaced."""
        symbols.declare_expression("x", Literal(1))
        assert symbols.resolve("x") == 1
        symbols.declare_expression("x", Literal(2))
        assert symbols.resolve("x") == 1

    def test_equate_replaces_pending_expression(self, symbols):
        """An unresolved equate's expression is replaced."""
        symbols.declare_expression("x", LabelRef("missing"))
        symbols.declare_expression("x", Literal(42))
        assert symbols.resolve("x") == 42

    def test_equate_uses_declaration_pc(self, symbols):
        """$ in an equate is the address where the equate appears."""
        symbols.declare_expression("here", CurrentAddress(), pc=0x4000)
        assert symbols.resolve("here") == 0x4000

    def test_equate_chain(self, symbols):
        """Equates may refer to other equates."""
        symbols.declare_expression("a", plus(LabelRef("b"), Literal(1)))
        symbols.declare_expression("b", plus(LabelRef("c"), Literal(1)))
        symbols.declare_value("c", 10)
        assert symbols.resolve("a") == 12
        assert symbols.get("b").known is True

    def test_circular_equates_stay_unresolved(self, symbols):
        """Circular equates resolve to None instead of recursing forever."""
        symbols.declare_expression("a", plus(LabelRef("b"), Literal(1)))
        symbols.declare_expression("b", plus(LabelRef("a"), Literal(1)))
        assert symbols.resolve("a") is None
        assert symbols.resolve("b") is None
        assert symbols.get("a").known is False


# =============================================================================
# Forward Reference Tests
# =============================================================================

class TestForwardReferences:
    """Test reading labels before they are declared."""

    def test_forward_reference_creates_placeholder(self, symbols):
        """Resolving an unseen label creates a used, unknown entry."""
        assert symbols.resolve("L") is None
        label = symbols.get("L")
        assert label is not None
        assert label.used is True
        assert label.known is False

    def test_forward_reference_resolves_after_declaration(self, symbols):
        """A later declaration makes the placeholder resolvable."""
        assert symbols.resolve("L") is None
        symbols.declare_value("L", 0x20)
        assert symbols.resolve("L") == 0x20
        assert symbols.get("L").used is True

    def test_declaration_does_not_mark_used(self, symbols):
        """Declaring a label does not mark it used."""
        symbols.declare_value("x", 1)
        assert symbols.get("x").used is False


# =============================================================================
# Unresolved Names Tests
# =============================================================================

class TestUnresolvedNames:
    """Test the end-of-run unresolved symbol list."""

    def test_read_only_label_is_unresolved(self, symbols):
        """A label only ever read is reported."""
        symbols.resolve("X")
        assert "X" in symbols.unresolved_names()

    def test_declared_label_is_not_unresolved(self, symbols):
        """A label declared with a value is not reported."""
        symbols.resolve("X")
        symbols.declare_value("X", 3)
        assert "X" not in symbols.unresolved_names()

    def test_label_with_expression_is_not_unresolved(self, symbols):
        """A label backed by an expression is not reported."""
        symbols.declare_expression("X", LabelRef("Y"))
        symbols.resolve("X")
        assert symbols.unresolved_names() == {"Y"}

    def test_unknown_direct_value_is_unresolved(self, symbols):
        """A label declared only with an unknown value is reported."""
        symbols.declare_value("X", None)
        assert symbols.unresolved_names() == {"X"}


# =============================================================================
# Lifecycle and Inspection Tests
# =============================================================================

class TestLifecycle:
    """Test reset and inspection helpers."""

    def test_reset_clears_everything(self, symbols):
        """No label survives a reset."""
        symbols.declare_value("x", 1)
        symbols.resolve("y")
        symbols.reset()
        assert len(symbols) == 0
        assert "x" not in symbols
        assert symbols.unresolved_names() == set()

    def test_known_values(self, symbols):
        """known_values lists only known labels."""
        symbols.declare_value("a", 1)
        symbols.declare_value("b", None)
        symbols.declare_expression("c", Literal(3))
        assert symbols.known_values() == {"a": 1}
        symbols.resolve("c")
        assert symbols.known_values() == {"a": 1, "c": 3}

    def test_names_in_declaration_order(self, symbols):
        """names() follows declaration order."""
        symbols.declare_value("b", 1)
        symbols.declare_value("a", 2)
        assert list(symbols.names()) == ["b", "a"]

    def test_find_similar(self, symbols):
        """Typos are matched to known labels."""
        symbols.declare_value("print_char", 0x100)
        symbols.declare_value("unrelated", 0x200)
        assert symbols.find_similar("prnt_char") == ["print_char"]

    def test_find_similar_ignores_unknown(self, symbols):
        """Unknown labels are not offered as suggestions."""
        symbols.resolve("loop1")
        assert symbols.find_similar("loop") == []
