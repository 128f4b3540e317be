"""Zeitraster: Blockerzeugung und Prüfungen auf Überlappung/Aufeinanderfolge.

Reine Zeit-Arithmetik ohne Zustand. Alle Bereiche sind halboffen [start, end).
"""

from config.schema import TimeGridConfig
from models.timeslot import (
    TimeBlock,
    duration_hours,
    minutes_to_time,
    ranges_overlap,
    time_to_minutes,
)

__all__ = [
    "TimeBlock",
    "are_consecutive",
    "blocks_for_grid",
    "consecutive_runs",
    "duration_hours",
    "generate_blocks",
    "minutes_to_time",
    "ranges_overlap",
    "time_to_minutes",
]


def generate_blocks(
    slot_duration_min: int,
    day_start: str,
    day_end: str,
    lunch_start: str,
    lunch_end: str,
) -> list[TimeBlock]:
    """Erzeugt die Zeitblöcke eines Tages.

    Die Blöcke liegen lückenlos im Raster [day_start, day_end). Blöcke, die
    die Mittagspause [lunch_start, lunch_end) berühren, entfallen. Der letzte
    Block wird bei day_end abgeschnitten.
    """
    if slot_duration_min <= 0:
        raise ValueError(f"Slot-Dauer muss > 0 sein (erhalten: {slot_duration_min})")

    start_min = time_to_minutes(day_start)
    end_min = time_to_minutes(day_end)
    lunch_start_min = time_to_minutes(lunch_start)
    lunch_end_min = time_to_minutes(lunch_end)

    blocks: list[TimeBlock] = []
    current = start_min
    while current < end_min:
        block_end = min(current + slot_duration_min, end_min)
        overlaps_lunch = current < lunch_end_min and lunch_start_min < block_end
        if not overlaps_lunch:
            blocks.append(TimeBlock(minutes_to_time(current), minutes_to_time(block_end)))
        current += slot_duration_min
    return blocks


def blocks_for_grid(grid: TimeGridConfig) -> list[TimeBlock]:
    """Blöcke für ein konfiguriertes Zeitraster."""
    return generate_blocks(
        grid.slot_duration_minutes,
        grid.day_start,
        grid.day_end,
        grid.lunch_start,
        grid.lunch_end,
    )


def are_consecutive(blocks: list[TimeBlock]) -> bool:
    """True wenn die Blöcke (nach Beginn sortiert) nahtlos aneinander anschließen."""
    if len(blocks) < 2:
        return True
    ordered = sorted(blocks, key=lambda b: b.start_minutes)
    if ordered != list(blocks):
        return False
    return all(a.end == b.start for a, b in zip(ordered, ordered[1:]))


def consecutive_runs(blocks: list[TimeBlock], hours: int) -> list[list[TimeBlock]]:
    """Alle Folgen aufeinanderfolgender Blöcke, die zusammen `hours` Stunden abdecken.

    Eine Folge beginnt bei jedem Block und wird so lange verlängert, bis die
    Summe der Blocklängen hours·60 Minuten erreicht. Folgen über eine Lücke
    (z.B. die Mittagspause) hinweg sind ausgeschlossen.
    """
    needed = hours * 60
    runs: list[list[TimeBlock]] = []
    for i in range(len(blocks)):
        run: list[TimeBlock] = []
        covered = 0
        for block in blocks[i:]:
            if run and run[-1].end != block.start:
                break
            run.append(block)
            covered += block.minutes
            if covered >= needed:
                runs.append(list(run))
                break
    return runs
