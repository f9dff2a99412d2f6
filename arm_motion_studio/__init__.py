"""
Arm Motion Studio Package.

This package contains the tools built around the arm_motion library: CSV/ZIP
export and import of recorded motions, configuration profiles, a command-line
interface, a rich replay dashboard, and an HTTP server exposing a live
recording session.
"""

__version__ = "0.3.0"
