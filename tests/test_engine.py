"""
Tests for LiquiditySweepEngine.process_bar().

Covers the end-to-end bar lifecycle: swing confirmation, level registration,
sweeps, mitigation, age-based expiry and the malformed-bar policy.
"""

import math

import pytest

from conftest import make_bar
from src.liquidity_sweeps.engine import LiquiditySweepEngine
from src.liquidity_sweeps.extrema_pyramid import SwingKind
from src.liquidity_sweeps.level_registry import LevelKind
from src.liquidity_sweeps.sweep_config import DetectionTerm, SweepConfig
from src.liquidity_sweeps.types import InvalidBarError

SHORT = SweepConfig(term=DetectionTerm.SHORT)


def run(engine, bars):
    return [engine.process_bar(bar) for bar in bars]


class TestSweepScenario:
    """Resistance 100 from bar 5, swept on bar 10, mitigated on bar 11."""

    def test_level_registered_on_confirmation(self, sweep_scenario_bars):
        engine = LiquiditySweepEngine(SHORT)
        results = run(engine, sweep_scenario_bars[:7])

        assert results[6].new_levels[0].price == 100.0
        assert results[6].new_levels[0].origin_index == 5
        assert all(not r.new_levels for r in results[:6])

    def test_sweep_on_bar_ten(self, sweep_scenario_bars):
        engine = LiquiditySweepEngine(SHORT)
        results = run(engine, sweep_scenario_bars[:11])

        sweeps = [e for r in results for e in r.sweeps]
        assert len(sweeps) == 1
        event = sweeps[0]
        assert event.bar_index == 10
        assert event.level.origin_index == 5
        assert event.level.kind is LevelKind.RESISTANCE
        assert event.level.swept
        assert not event.level.mitigated

    def test_sweep_geometry(self, sweep_scenario_bars):
        engine = LiquiditySweepEngine(SHORT)
        event = run(engine, sweep_scenario_bars[:11])[10].sweeps[0]

        assert event.reference_line.origin_time == sweep_scenario_bars[5].timestamp
        assert event.reference_line.end_time == sweep_scenario_bars[10].timestamp
        assert event.highlight_box.time1 == sweep_scenario_bars[9].timestamp
        assert event.highlight_box.time2 == sweep_scenario_bars[10].timestamp + 60
        assert event.highlight_box.price1 == 101.0
        assert event.highlight_box.price2 == 100.0

    def test_mitigation_on_bar_eleven(self, sweep_scenario_bars):
        engine = LiquiditySweepEngine(SHORT)
        results = run(engine, sweep_scenario_bars[:12])

        mitigations = results[11].mitigations
        assert len(mitigations) == 1
        assert mitigations[0].level.origin_index == 5
        assert mitigations[0].level.mitigated
        assert results[11].sweeps == []

    def test_events_keep_flags_from_their_bar(self, sweep_scenario_bars):
        """The sweep on bar 10 still reads unmitigated after bar 11 mitigates the level."""
        engine = LiquiditySweepEngine(SHORT)
        results = run(engine, sweep_scenario_bars)

        sweep = results[10].sweeps[0]
        mitigation = results[11].mitigations[0]
        assert sweep.level.level_id == mitigation.level.level_id
        assert sweep.level.swept and not sweep.level.mitigated
        assert sweep.to_dict()["level"]["mitigated"] is False
        assert mitigation.level.mitigated

    def test_mitigated_level_absent_afterwards(self, sweep_scenario_bars):
        engine = LiquiditySweepEngine(SHORT)
        run(engine, sweep_scenario_bars)

        assert all(lv.origin_index != 5 for lv in engine.resistance_levels)
        assert engine.stats.mitigations["resistance"] == 1
        assert engine.stats.sweeps["resistance"] == 1

    def test_live_levels_at_end(self, sweep_scenario_bars):
        engine = LiquiditySweepEngine(SHORT)
        run(engine, sweep_scenario_bars)

        assert [(lv.price, lv.origin_index) for lv in engine.resistance_levels] == [(103.0, 11)]
        assert [(lv.price, lv.origin_index) for lv in engine.support_levels] == [(93.0, 9)]

    def test_long_term_needs_deeper_structure(self, sweep_scenario_bars):
        engine = LiquiditySweepEngine()
        results = run(engine, sweep_scenario_bars)
        assert all(not r.new_swings for r in results)


class TestLifecycle:

    def test_at_most_one_sweep_per_level(self, sweep_scenario_bars):
        bars = sweep_scenario_bars[:11] + [make_bar(11, 98, 101.5, 97, 99.5)]
        engine = LiquiditySweepEngine(SHORT)
        results = run(engine, bars)

        assert sum(len(r.sweeps) for r in results) == 1

    def test_flags_are_monotone(self, zigzag_bars):
        engine = LiquiditySweepEngine(SHORT)
        seen = {}
        for bar in zigzag_bars:
            engine.process_bar(bar)
            for level in engine.active_levels():
                before = seen.get(level.level_id, (False, False))
                now = (level.mitigated, level.swept)
                assert now[0] >= before[0] and now[1] >= before[1]
                seen[level.level_id] = now

    def test_events_follow_origin(self, zigzag_bars):
        engine = LiquiditySweepEngine(SHORT)
        for result in run(engine, zigzag_bars):
            for event in result.sweeps + result.mitigations:
                assert event.bar_index > event.level.origin_index

    def test_zigzag_levels(self, zigzag_bars):
        """Peaks every 8 bars never get retested, so every one stays live."""
        engine = LiquiditySweepEngine(SHORT)
        run(engine, zigzag_bars)

        assert [lv.origin_index for lv in engine.resistance_levels] == [36, 28, 20, 12, 4]
        assert [lv.origin_index for lv in engine.support_levels] == [32, 24, 16, 8]
        assert all(lv.price == 111.0 for lv in engine.resistance_levels)

    def test_equal_swings_never_promote(self, zigzag_bars):
        engine = LiquiditySweepEngine(SweepConfig(term=DetectionTerm.INTERMEDIATE))
        run(engine, zigzag_bars)
        assert engine.active_levels() == []

    def test_flat_bars_produce_nothing(self):
        engine = LiquiditySweepEngine(SHORT)
        results = run(engine, [make_bar(i, 100, 101, 99, 100) for i in range(30)])
        assert all(not r.new_swings for r in results)

    def test_non_positive_swing_not_registered(self):
        engine = LiquiditySweepEngine(SHORT)
        bars = [
            make_bar(0, 2.5, 3.0, 2.0, 2.5),
            make_bar(1, 2.0, 3.5, 0.0, 2.0),
            make_bar(2, 2.5, 3.0, 2.0, 2.5),
        ]
        result = run(engine, bars)[2]

        assert {s.kind for s in result.new_swings} == {SwingKind.HIGH, SwingKind.LOW}
        assert [lv.kind for lv in result.new_levels] == [LevelKind.RESISTANCE]
        assert engine.support_levels == []


class TestAgeCeiling:

    def _bars(self, count):
        bars = [make_bar(0, 10, 10, 9, 10), make_bar(1, 15, 20, 14, 15)]
        bars += [make_bar(i, 15, 15, 14, 15) for i in range(2, count)]
        return bars

    def test_level_expires_after_max_age(self):
        """Resistance from bar 1 with max age 2000: live at bar 2001, gone at 2002."""
        engine = LiquiditySweepEngine(SHORT)
        bars = self._bars(2003)

        run(engine, bars[:2002])
        assert [lv.origin_index for lv in engine.resistance_levels] == [1]

        result = engine.process_bar(bars[2002])
        assert engine.resistance_levels == []
        assert [lv.origin_index for lv in result.expired] == [1]
        assert engine.stats.expired == 1

    def test_custom_max_age(self):
        engine = LiquiditySweepEngine(SHORT.with_max_level_age(5))
        results = run(engine, self._bars(10))

        assert [lv.origin_index for lv in results[7].expired] == [1]
        assert all(not r.expired for r in results[:7])

    def test_expired_levels_are_not_mitigations(self):
        engine = LiquiditySweepEngine(SHORT.with_max_level_age(5))
        results = run(engine, self._bars(10))
        assert all(not r.mitigations for r in results)

    def test_level_still_swept_on_expiry_bar(self):
        """Age 6 with max age 5: the wick on that bar is still a sweep, then the level expires."""
        engine = LiquiditySweepEngine(SHORT.with_max_level_age(5))
        run(engine, self._bars(7))

        result = engine.process_bar(make_bar(7, 15, 21, 14, 15))

        assert [(e.level.origin_index, e.bar_index) for e in result.sweeps] == [(1, 7)]
        assert [lv.origin_index for lv in result.expired] == [1]
        assert engine.resistance_levels == []

    def test_level_still_mitigated_on_expiry_bar(self):
        engine = LiquiditySweepEngine(SHORT.with_max_level_age(5))
        run(engine, self._bars(7))

        result = engine.process_bar(make_bar(7, 15, 22, 14, 21))

        assert [e.level.origin_index for e in result.mitigations] == [1]
        assert result.expired == []
        assert engine.resistance_levels == []


class TestInvalidBars:

    def test_first_bar_must_be_index_zero(self):
        engine = LiquiditySweepEngine(SHORT)
        with pytest.raises(InvalidBarError, match="expected index 0"):
            engine.process_bar(make_bar(1, 100, 101, 99, 100))

    def test_gap_in_index_rejected(self):
        engine = LiquiditySweepEngine(SHORT)
        engine.process_bar(make_bar(0, 100, 101, 99, 100))
        with pytest.raises(InvalidBarError):
            engine.process_bar(make_bar(2, 100, 101, 99, 100))

    def test_non_increasing_timestamp_rejected(self):
        engine = LiquiditySweepEngine(SHORT)
        engine.process_bar(make_bar(0, 100, 101, 99, 100, timestamp=1700000060))
        with pytest.raises(InvalidBarError, match="timestamp"):
            engine.process_bar(make_bar(1, 100, 101, 99, 100, timestamp=1700000060))

    def test_non_finite_price_rejected(self):
        engine = LiquiditySweepEngine(SHORT)
        with pytest.raises(InvalidBarError, match="high"):
            engine.process_bar(make_bar(0, 100, math.inf, 99, 100))

    def test_high_below_low_rejected(self):
        engine = LiquiditySweepEngine(SHORT)
        with pytest.raises(InvalidBarError):
            engine.process_bar(make_bar(0, 100, 98, 99, 100))

    def test_invalid_bar_is_a_value_error(self):
        engine = LiquiditySweepEngine(SHORT)
        with pytest.raises(ValueError):
            engine.process_bar(make_bar(0, math.nan, 101, 99, 100))

    def test_rejected_bar_leaves_state_untouched(self, sweep_scenario_bars):
        engine = LiquiditySweepEngine(SHORT)
        run(engine, sweep_scenario_bars[:10])
        high_before = engine.high_pyramid.buffers()
        low_before = engine.low_pyramid.buffers()
        levels_before = [lv.to_dict() for lv in engine.active_levels()]

        with pytest.raises(InvalidBarError):
            engine.process_bar(make_bar(10, 98, 101, 97, math.nan))

        assert engine.last_bar_index == 9
        assert engine.high_pyramid.buffers() == high_before
        assert engine.low_pyramid.buffers() == low_before
        assert [lv.to_dict() for lv in engine.active_levels()] == levels_before

        # The valid bar is still accepted afterwards
        assert len(engine.process_bar(sweep_scenario_bars[10]).sweeps) == 1

    def test_skip_policy(self, sweep_scenario_bars):
        config = SweepConfig(term=DetectionTerm.SHORT, skip_invalid_bars=True)
        engine = LiquiditySweepEngine(config)
        run(engine, sweep_scenario_bars[:10])

        result = engine.process_bar(make_bar(12, 98, 101, 97, 99))

        assert result.skipped
        assert not result.has_events
        assert engine.last_bar_index == 9
        assert engine.stats.bars_skipped == 1

    def test_skip_policy_continues_after_bad_bar(self, sweep_scenario_bars):
        """A malformed bar in its own slot is skipped and the feed carries on."""
        engine = LiquiditySweepEngine(SweepConfig(term=DetectionTerm.SHORT, skip_invalid_bars=True))
        run(engine, sweep_scenario_bars[:5])

        bad = make_bar(5, 99, math.nan, 98, 99, timestamp=sweep_scenario_bars[5].timestamp)
        assert engine.process_bar(bad).skipped

        results = run(engine, sweep_scenario_bars[6:])

        assert [r.skipped for r in results] == [False] * 7
        assert engine.last_bar_index == 12
        assert engine.stats.bars_processed == 12
        assert engine.stats.bars_skipped == 1

    def test_skipped_out_of_order_bar_keeps_slot(self, sweep_scenario_bars):
        """A bar with the wrong index does not consume the expected slot."""
        engine = LiquiditySweepEngine(SweepConfig(term=DetectionTerm.SHORT, skip_invalid_bars=True))
        run(engine, sweep_scenario_bars[:5])

        assert engine.process_bar(make_bar(7, 99, 100, 98, 99)).skipped
        assert engine.next_bar_index == 5
        assert not engine.process_bar(sweep_scenario_bars[5]).skipped
        assert engine.last_bar_index == 5

    def test_skip_policy_logs_warning(self, caplog):
        engine = LiquiditySweepEngine(SweepConfig(skip_invalid_bars=True))
        with caplog.at_level("WARNING"):
            engine.process_bar(make_bar(3, 100, 101, 99, 100))
        assert "Skipping bar" in caplog.text


class TestEngineState:

    def test_initial_state(self):
        engine = LiquiditySweepEngine()
        assert engine.config == SweepConfig.default()
        assert engine.last_bar_index == -1
        assert engine.active_levels() == []
        assert len(engine.high_pyramid.buffers()) == 3

    def test_reset(self, sweep_scenario_bars):
        engine = LiquiditySweepEngine(SHORT)
        run(engine, sweep_scenario_bars)
        engine.reset()

        assert engine.last_bar_index == -1
        assert engine.active_levels() == []
        assert engine.stats.bars_processed == 0
        engine.process_bar(sweep_scenario_bars[0])

    def test_deterministic(self, zigzag_bars):
        first = [r.to_dict() for r in run(LiquiditySweepEngine(SHORT), zigzag_bars)]
        second = [r.to_dict() for r in run(LiquiditySweepEngine(SHORT), zigzag_bars)]
        assert first == second

    def test_stats(self, sweep_scenario_bars):
        engine = LiquiditySweepEngine(SHORT)
        run(engine, sweep_scenario_bars)

        stats = engine.stats.to_dict()
        assert stats["bars_processed"] == 13
        assert stats["swings"] == {"high": 2, "low": 1}
        assert stats["sweeps"] == {"resistance": 1, "support": 0}
