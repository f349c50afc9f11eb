"""
z80core - Assembler Configuration
=================================

Settings for a code generation run. Configuration can come from:
- Default values (defined here)
- Keyword arguments
- Environment variables (AssemblerConfig.from_env)
"""

from dataclasses import dataclass
import os


# A fixed point needs two passes to compare
MIN_PASSES = 2


@dataclass
class AssemblerConfig:
    """
    Configuration for a multi-pass code generation run.

    Attributes:
        origin: Program counter at the start of every pass (default: 0)
        max_passes: Upper bound on sizing passes before giving up (default: 100)
        max_errors: Errors collected before the run stops (default: 100)
        strict_redefinition: Report a label declared twice in one pass as an
            error instead of a warning (default: False)
    """

    origin: int = 0
    max_passes: int = 100
    max_errors: int = 100
    strict_redefinition: bool = False

    # ═══════════════════════════════════════════════════════════════════════════
    # FACTORY METHODS
    # ═══════════════════════════════════════════════════════════════════════════

    @classmethod
    def from_env(cls) -> "AssemblerConfig":
        """
        Create AssemblerConfig from environment variables.

        Environment variables (all optional):
            Z80CORE_ORIGIN: Start address (decimal, or hex with 0x / $ prefix)
            Z80CORE_MAX_PASSES: Maximum number of sizing passes (at least 2)
            Z80CORE_MAX_ERRORS: Maximum number of collected errors
            Z80CORE_STRICT: "1"/"true"/"yes" to enable strict redefinition

        Returns:
            AssemblerConfig with values from environment variables
        """
        config = cls()

        if origin := os.environ.get("Z80CORE_ORIGIN"):
            try:
                config.origin = parse_number(origin)
            except ValueError:
                pass  # Invalid value, keep default

        if passes := os.environ.get("Z80CORE_MAX_PASSES"):
            try:
                value = int(passes)
            except ValueError:
                value = None
            if value is not None and value >= MIN_PASSES:
                config.max_passes = value

        if errors := os.environ.get("Z80CORE_MAX_ERRORS"):
            try:
                config.max_errors = int(errors)
            except ValueError:
                pass

        if strict := os.environ.get("Z80CORE_STRICT"):
            config.strict_redefinition = strict.strip().lower() in ("1", "true", "yes")

        return config


def parse_number(text: str) -> int:
    """
    Parse a decimal or hexadecimal number ($FF, 0xFF or 255).

    Raises:
        ValueError: If the text is not a number
    """
    text = text.strip()
    if text.startswith("$"):
        return int(text[1:], 16)
    if text.lower().startswith("0x"):
        return int(text[2:], 16)
    return int(text)
