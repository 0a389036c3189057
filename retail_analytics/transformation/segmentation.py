"""
Customer Segmentation

Maps a lifetime value or a day count onto a named bucket through an
ordered table of half-open ranges.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple


@dataclass(frozen=True)
class SegmentRange:
    """Half-open range [min, max) carrying a label"""
    label: str
    min: float
    max: float = math.inf

    def contains(self, value: float) -> bool:
        return self.min <= value < self.max


@dataclass(frozen=True)
class SegmentTable:
    """Ordered ranges plus the label used when nothing matches"""
    ranges: Tuple[SegmentRange, ...]
    default: str

    def __post_init__(self):
        if not self.ranges:
            raise ValueError("Segment table needs at least one range")
        for previous, current in zip(self.ranges, self.ranges[1:]):
            if current.min < previous.max:
                raise ValueError(
                    f"Overlapping segment ranges: {previous.label} and {current.label}"
                )

    @property
    def labels(self) -> List[str]:
        labels = [r.label for r in self.ranges]
        if self.default not in labels:
            labels.append(self.default)
        return labels


def build_table(bounds: Sequence[Tuple[str, float]], default: str) -> SegmentTable:
    """
    Build a contiguous table from (label, lower bound) pairs.

    The last range is open-ended.
    """
    ranges = []
    for index, (label, lower) in enumerate(bounds):
        upper = bounds[index + 1][1] if index + 1 < len(bounds) else math.inf
        ranges.append(SegmentRange(label=label, min=lower, max=upper))
    return SegmentTable(ranges=tuple(ranges), default=default)


def segment(value: float, table: SegmentTable) -> str:
    """Return the label of the first range containing value"""
    for bucket in table.ranges:
        if bucket.contains(value):
            return bucket.label
    return table.default


VALUE_LABELS = ["New/Low", "Regular", "Good", "VIP", "Whale"]
RECENCY_LABELS = ["Active", "Warm", "Cool", "Cold", "Lost"]

# profile name -> (lifetime value table, days-since-visit table)
SEGMENT_PROFILES: Dict[str, Tuple[SegmentTable, SegmentTable]] = {
    "default": (
        build_table(list(zip(VALUE_LABELS, [0, 100, 500, 1500, 5000])), default="New/Low"),
        build_table(list(zip(RECENCY_LABELS, [0, 14, 30, 60, 120])), default="Lost"),
    ),
    "wide": (
        build_table(list(zip(VALUE_LABELS, [0, 500, 2000, 5000, 10000])), default="New/Low"),
        build_table(list(zip(RECENCY_LABELS, [0, 30, 90, 180, 365])), default="Lost"),
    ),
}


def get_segment_tables(profile: str = "default") -> Tuple[SegmentTable, SegmentTable]:
    """Value and recency tables for a named profile"""
    try:
        return SEGMENT_PROFILES[profile]
    except KeyError:
        raise ValueError(f"Unknown segment profile: {profile}") from None
