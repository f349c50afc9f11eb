"""
z80core Command-Line Interface
==============================

- **z80emit**: generate a binary image from a JSON program

The tool is a Click-based CLI application with help and error reporting.
"""

__all__ = ["z80emit"]
