"""Tests für Zeitraster, Zeit-Arithmetik und Blockfolgen."""

import pytest

from config.schema import TimeGridConfig
from solver.time_grid import (
    TimeBlock,
    are_consecutive,
    blocks_for_grid,
    consecutive_runs,
    duration_hours,
    generate_blocks,
    minutes_to_time,
    ranges_overlap,
    time_to_minutes,
)


class TestTimeArithmetic:
    def test_time_to_minutes(self):
        assert time_to_minutes("08:00") == 480
        assert time_to_minutes("9:30") == 570

    @pytest.mark.parametrize("bad", ["9 Uhr", "25:00", "12:75", ""])
    def test_time_to_minutes_invalid(self, bad):
        with pytest.raises(ValueError):
            time_to_minutes(bad)

    def test_minutes_to_time_zero_padded(self):
        assert minutes_to_time(545) == "09:05"

    def test_adjacent_ranges_do_not_overlap(self):
        """Halboffene Bereiche: 09–10 und 10–11 berühren sich nur."""
        assert not ranges_overlap("09:00", "10:00", "10:00", "11:00")
        assert ranges_overlap("09:00", "10:30", "10:00", "11:00")
        assert ranges_overlap("09:00", "12:00", "10:00", "11:00")

    def test_duration_rounds_up(self):
        assert duration_hours("09:00", "11:00") == 2
        assert duration_hours("09:00", "10:30") == 2


class TestGenerateBlocks:
    def test_default_grid_skips_lunch(self):
        """08:00–18:00 mit Mittag 12–13 → 9 Blöcke, keiner berührt die Pause."""
        blocks = blocks_for_grid(TimeGridConfig())
        assert len(blocks) == 9
        assert blocks[0] == TimeBlock("08:00", "09:00")
        assert blocks[3] == TimeBlock("11:00", "12:00")
        assert blocks[4] == TimeBlock("13:00", "14:00")
        assert all(b.start != "12:00" for b in blocks)

    def test_last_block_truncated(self):
        blocks = generate_blocks(90, "08:00", "12:00", "12:00", "12:00")
        assert [b.time_range for b in blocks] == [
            "08:00-09:30", "09:30-11:00", "11:00-12:00",
        ]

    def test_block_touching_lunch_dropped(self):
        """Ein Block, der in die Pause hineinreicht, entfällt ganz."""
        blocks = generate_blocks(90, "08:00", "14:00", "12:00", "13:00")
        assert "11:00-12:30" not in [b.time_range for b in blocks]
        assert blocks[0].time_range == "08:00-09:30"

    def test_invalid_slot_duration(self):
        with pytest.raises(ValueError):
            generate_blocks(0, "08:00", "18:00", "12:00", "13:00")


class TestConsecutiveRuns:
    def test_are_consecutive(self):
        a, b, c = TimeBlock("08:00", "09:00"), TimeBlock("09:00", "10:00"), TimeBlock("13:00", "14:00")
        assert are_consecutive([a, b])
        assert not are_consecutive([a, c])
        assert not are_consecutive([b, a])
        assert are_consecutive([a])

    def test_runs_never_span_lunch(self):
        blocks = blocks_for_grid(TimeGridConfig())
        runs = consecutive_runs(blocks, 2)
        starts = [r[0].start for r in runs]
        assert starts == ["08:00", "09:00", "10:00", "13:00", "14:00", "15:00", "16:00"]
        assert all(are_consecutive(r) for r in runs)

    def test_four_hour_runs(self):
        runs = consecutive_runs(blocks_for_grid(TimeGridConfig()), 4)
        assert [(r[0].start, r[-1].end) for r in runs] == [
            ("08:00", "12:00"), ("13:00", "17:00"), ("14:00", "18:00"),
        ]

    def test_no_run_longer_than_day(self):
        assert consecutive_runs(blocks_for_grid(TimeGridConfig()), 6) == []
