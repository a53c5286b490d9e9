from ._rangequery import (
    DISJOINT,
    EQUAL,
    NESTED,
    OVERLAPPING,
    Selector,
    TriuReader,
    classify_windows,
    concat,
    mirror,
    normalize_windows,
    overlap_breakpoints,
    transpose,
)

__all__ = [
    "DISJOINT",
    "EQUAL",
    "NESTED",
    "OVERLAPPING",
    "Selector",
    "TriuReader",
    "classify_windows",
    "concat",
    "mirror",
    "normalize_windows",
    "overlap_breakpoints",
    "transpose",
]
