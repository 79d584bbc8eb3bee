# Liquidity Sweeps Module
#
# Streaming swing detection, level lifecycle and sweep evaluation.

from .types import Bar, InvalidBarError, validate_bar
from .sweep_config import SweepConfig, DetectionTerm
from .extrema_pyramid import CandidatePoint, ExtremaPyramid, PyramidMode, Swing, SwingKind
from .level_registry import Level, LevelKind, LevelRegistry
from .geometry import HighlightBox, ReferenceLine
from .events import (
    BarResult,
    LevelEvent,
    LevelRegisteredEvent,
    MitigationEvent,
    SweepEvent,
)
from .evaluator import LevelOutcome, SweepEvaluator
from .engine import LiquiditySweepEngine

# Batch processing
from .calibrate import calibrate, calibrate_from_dataframe, dataframe_to_bars, summarize
