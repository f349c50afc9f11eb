# =============================================================================
# test_errors.py - Error Hierarchy and Configuration Tests
# =============================================================================
# Tests for error formatting, the error collector and AssemblerConfig.
# =============================================================================

import pytest

from z80core.assembler import CodeGenerator, ConcreteByte, Instruction
from z80core.config import AssemblerConfig, parse_number
from z80core.errors import (
    AssemblerError,
    BranchRangeError,
    ConvergenceError,
    DuplicateSymbolError,
    ErrorCollector,
    SourceLocation,
    TooManyErrors,
    UndefinedSymbolError,
    ValueRangeError,
    Z80Error,
)


LOC = SourceLocation("main.asm", 15, 9)


# =============================================================================
# Error Formatting Tests
# =============================================================================

class TestErrorFormatting:
    """Test error message formatting."""

    def test_location_and_hint(self):
        error = AssemblerError("something failed", LOC, hint="try again")
        assert str(error) == "main.asm:15:9: error: something failed\nhint: try again"

    def test_without_location(self):
        assert str(AssemblerError("something failed")) == "error: something failed"

    def test_hierarchy(self):
        """Every error is catchable as Z80Error."""
        assert issubclass(BranchRangeError, ValueRangeError)
        assert issubclass(ValueRangeError, AssemblerError)
        assert issubclass(AssemblerError, Z80Error)

    def test_undefined_symbol_hint(self):
        error = UndefinedSymbolError("prnt_char", LOC, similar_symbols=["print_char"])
        assert str(error) == (
            "main.asm:15:9: error: undefined symbol 'prnt_char'\n"
            "hint: did you mean 'print_char'?"
        )

    def test_duplicate_symbol(self):
        error = DuplicateSymbolError("loop", LOC, SourceLocation("main.asm", 3, 1))
        assert "duplicate symbol 'loop'" in str(error)
        assert "first defined at main.asm:3:1" in str(error)

    def test_branch_range(self):
        error = BranchRangeError("label far", -200, LOC)
        assert error.value == -200
        assert "label far is too far from JR instruction: -200 bytes" in str(error)
        assert "backward" in error.hint

    def test_convergence(self):
        assert "did not converge after 7 passes" in str(ConvergenceError(7))


# =============================================================================
# Error Collector Tests
# =============================================================================

class TestErrorCollector:
    """Test batch error collection."""

    def test_collects_errors_and_warnings(self):
        collector = ErrorCollector()
        collector.add(AssemblerError("first", LOC))
        collector.add_warning("careful")
        assert collector.has_errors()
        assert collector.error_count() == 1
        assert collector.warning_count() == 1

    def test_report(self):
        collector = ErrorCollector()
        collector.add(AssemblerError("first", LOC))
        collector.add(AssemblerError("second"))
        collector.add_warning("careful")
        report = collector.report()
        assert "main.asm:15:9: error: first" in report
        assert "error: second" in report
        assert "  careful" in report
        assert report.endswith("2 errors, 1 warning")

    def test_limit(self):
        collector = ErrorCollector(max_errors=2)
        collector.add(AssemblerError("one"))
        with pytest.raises(TooManyErrors):
            collector.add(AssemblerError("two"))
        assert collector.error_count() == 2

    def test_clear(self):
        collector = ErrorCollector()
        collector.add(AssemblerError("one"))
        collector.add_warning("w")
        collector.clear()
        assert not collector.has_errors()
        assert collector.warning_count() == 0


# =============================================================================
# Configuration Tests
# =============================================================================

class TestAssemblerConfig:
    """Test configuration defaults and environment overrides."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ("Z80CORE_ORIGIN", "Z80CORE_MAX_PASSES", "Z80CORE_MAX_ERRORS", "Z80CORE_STRICT"):
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self):
        config = AssemblerConfig()
        assert config.origin == 0
        assert config.max_passes == 100
        assert config.max_errors == 100
        assert config.strict_redefinition is False

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("Z80CORE_ORIGIN", "$8000")
        monkeypatch.setenv("Z80CORE_MAX_PASSES", "10")
        monkeypatch.setenv("Z80CORE_MAX_ERRORS", "5")
        monkeypatch.setenv("Z80CORE_STRICT", "yes")
        config = AssemblerConfig.from_env()
        assert config.origin == 0x8000
        assert config.max_passes == 10
        assert config.max_errors == 5
        assert config.strict_redefinition is True

    def test_invalid_env_keeps_defaults(self, monkeypatch):
        monkeypatch.setenv("Z80CORE_ORIGIN", "here")
        monkeypatch.setenv("Z80CORE_MAX_PASSES", "many")
        config = AssemblerConfig.from_env()
        assert config.origin == 0
        assert config.max_passes == 100

    @pytest.mark.parametrize("text,expected", [
        ("255", 255),
        ("$FF", 255),
        ("0xff", 255),
        (" 0X10 ", 16),
        ("-1", -1),
    ])
    def test_parse_number(self, text, expected):
        assert parse_number(text) == expected

    @pytest.mark.parametrize("passes", ["1", "0", "-5"])
    def test_env_pass_limit_below_two_ignored(self, monkeypatch, passes):
        """Too few passes from the environment keeps the default."""
        monkeypatch.setenv("Z80CORE_MAX_PASSES", passes)
        config = AssemblerConfig.from_env()
        assert config.max_passes == 100
        assert CodeGenerator(config).generate([Instruction([ConcreteByte(0)])]) == b"\x00"

    def test_parse_number_invalid(self):
        with pytest.raises(ValueError):
            parse_number("$")
