"""
Replay cache module for sharing state between router endpoints.

Holds the sweep engine for the loaded data file plus the lifecycle events
accumulated since the last init. One engine per data file; access is
serialized with a lock since FastAPI may run sync handlers on a thread pool.
"""

import threading
from dataclasses import dataclass, field
from typing import List, Optional

from ...liquidity_sweeps.engine import LiquiditySweepEngine
from ...liquidity_sweeps.events import LevelEvent


@dataclass
class SweepCache:
    """
    Centralized cache for replay state.

    All routers access this shared state through the module-level instance.
    """
    engine: Optional[LiquiditySweepEngine] = None
    events: List[LevelEvent] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def reset(self) -> None:
        """Reset the cache to initial state."""
        self.engine = None
        self.events = []

    def is_initialized(self) -> bool:
        """Check if the cache has been initialized with an engine."""
        return self.engine is not None


# Module-level cache instance - shared by all routers
_cache = SweepCache()


def get_cache() -> SweepCache:
    """Get the shared replay cache instance."""
    return _cache


def reset_cache() -> None:
    """Reset the shared cache to initial state."""
    _cache.reset()
