"""
Level to stage mapping.

Levels (1-100) are the fine-grained difficulty tiers a learner masters one
by one; stages group them into the coarser phases used in reports:

    number range 10/20   levels  1-20  -> stages  1-3
    number range 20      levels 21-40  -> stages  4-7
    number range 100     levels 41-68  -> stages  8-11
    number range 100     levels 69-92  -> stages 12-15
    transfer             levels 93-100 -> stages 16-20
"""
from __future__ import annotations

from bisect import bisect_left

# (highest level in band, stage)
STAGE_BANDS: tuple[tuple[int, int], ...] = (
    (7, 1),
    (13, 2),
    (20, 3),
    (25, 4),
    (30, 5),
    (35, 6),
    (40, 7),
    (48, 8),
    (55, 9),
    (62, 10),
    (68, 11),
    (75, 12),
    (81, 13),
    (87, 14),
    (92, 15),
    (93, 16),
    (95, 17),
    (97, 18),
    (99, 19),
    (100, 20),
)

_BAND_TOPS = [top for top, _ in STAGE_BANDS]
MAX_STAGE = STAGE_BANDS[-1][1]


def stage_for_level(level: int) -> int:
    """
    Derive the stage a level belongs to.

    Levels above the last band stay in the final stage.

    Raises:
        ValueError: If level is below 1
    """
    if level < 1:
        raise ValueError(f"level must be >= 1, got {level}")
    index = bisect_left(_BAND_TOPS, level)
    if index >= len(STAGE_BANDS):
        return MAX_STAGE
    return STAGE_BANDS[index][1]


def levels_in_stage(stage: int) -> range:
    """Return the range of levels grouped into a stage."""
    if not 1 <= stage <= MAX_STAGE:
        raise ValueError(f"stage must be within 1-{MAX_STAGE}, got {stage}")
    index = stage - 1
    first = STAGE_BANDS[index - 1][0] + 1 if index > 0 else 1
    return range(first, STAGE_BANDS[index][0] + 1)


def number_range_for_level(level: int) -> int:
    """Number range (10, 20 or 100) tasks are generated in at a level."""
    if level <= 20:
        return 10
    if level <= 40:
        return 20
    return 100
