"""
Collect pprof profiles and metrics endpoints from running servers into local dump files.
"""

__all__ = ["collector", "bundle", "cli"]
__version__ = "0.1.0"
