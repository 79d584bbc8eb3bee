"""
Router package for the sweep replay server.

Routers:
- sweeps.py: Engine init, advance, live levels, events, state
"""

from .sweeps import router as sweeps_router

__all__ = [
    "sweeps_router",
]
