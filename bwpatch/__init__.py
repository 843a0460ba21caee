"""Bitwig patch manager — patch orchestration and integrity for bitwig.jar."""

__version__ = "0.1.0"
