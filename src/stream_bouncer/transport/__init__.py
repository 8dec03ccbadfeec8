"""Transports for the bridge.

Only stdio is provided: the host talks to the bridge as a subprocess.
"""

from .stdio_adapter import StdioProtocolAdapter

__all__ = ["StdioProtocolAdapter"]
