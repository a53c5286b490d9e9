DEFAULT_CHUNKSIZE = 30_000_000

from ._ingest import (
    PairsBuilder,
    ResGroupBuilder,
    aggregate_pixels,
    as_tig_lengths,
)
from ._create import create_from_pairs

__all__ = [
    "DEFAULT_CHUNKSIZE",
    "PairsBuilder",
    "ResGroupBuilder",
    "aggregate_pixels",
    "as_tig_lengths",
    "create_from_pairs",
]
