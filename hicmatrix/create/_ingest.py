"""
Resolution group builders
~~~~~~~~~~~~~~~~~~~~~~~~~

Builders produce the bin table, the contig offsets and the sorted pixel table
of one resolution. They are iterable: iterating yields chunks of binned
records, which ``build()`` aggregates into unique pixels.

"""
import numpy as np
import pandas as pd

from .._logging import get_logger
from ..util import binnify, tig_offsets

logger = get_logger("hicmatrix.create")

PAIRS_COLUMNS = [
    "read_name", "chrom1", "pos1", "chrom2", "pos2", "strand1", "strand2"
]
PROGRESS_EVERY = 1_000_000


def as_tig_lengths(tig_lengths):
    """Coerce a Series or a sequence of (name, length) pairs to a Series."""
    if isinstance(tig_lengths, pd.Series):
        return tig_lengths.astype(np.int64)
    names, lengths = zip(*tig_lengths) if len(tig_lengths) else ((), ())
    return pd.Series(list(lengths), index=list(names), dtype=np.int64)


def _is_integral(pos):
    return np.isfinite(pos) & (np.floor(pos) == pos)


def _aggregate(chunk):
    grouped = chunk.groupby(["bin1_id", "bin2_id"], sort=False)
    if "count" in chunk:
        return grouped["count"].sum()
    return grouped.size()


def aggregate_pixels(chunks):
    """
    Sum records falling on the same pixel across a stream of chunks.

    Parameters
    ----------
    chunks : iterable of DataFrame
        Records with columns ``bin1_id`` and ``bin2_id`` and, optionally,
        ``count``. Records without a count column weigh one each.

    Returns
    -------
    DataFrame
        Unique pixels sorted by ``bin1_id`` then ``bin2_id``.

    """
    acc = None
    for chunk in chunks:
        if not len(chunk):
            continue
        agg = _aggregate(chunk)
        acc = agg if acc is None else acc.add(agg, fill_value=0)

    if acc is None:
        return pd.DataFrame({
            "bin1_id": np.empty((0,), dtype=np.int64),
            "bin2_id": np.empty((0,), dtype=np.int64),
            "count": np.empty((0,), dtype=np.int64),
        })

    pixels = acc.sort_index().rename("count").reset_index()
    return pd.DataFrame({
        "bin1_id": pixels["bin1_id"].to_numpy(np.int64),
        "bin2_id": pixels["bin2_id"].to_numpy(np.int64),
        "count": pixels["count"].to_numpy().astype(np.int64),
    })


class ResGroupBuilder:
    """
    Base class for builders of a single resolution.

    Parameters
    ----------
    tig_lengths : pandas.Series
        Contig lengths indexed by name, in catalog order.
    resolution : int
        Bin size in bp.

    """

    def __init__(self, tig_lengths, resolution):
        resolution = int(resolution)
        if resolution <= 0:
            raise ValueError(f"Resolution must be positive, got {resolution}.")
        self.tig_lengths = as_tig_lengths(tig_lengths)
        self.resolution = resolution
        self.bins = binnify(self.tig_lengths, resolution)
        self.chrom_offset = tig_offsets(self.tig_lengths, resolution)

    @property
    def n_bins(self):
        return len(self.bins)

    def __iter__(self):
        """Iterator over chunks of binned records.

        Chunks are DataFrames with columns `bin1_id` and `bin2_id` satisfying
        `bin1_id <= bin2_id`, and optionally `count`.

        """
        raise NotImplementedError

    def build(self):
        """The sorted, deduplicated pixel table of the resolution."""
        return aggregate_pixels(iter(self))


class PairsBuilder(ResGroupBuilder):
    """
    Bin pairwise contact observations from a pairs file.

    Parameters
    ----------
    tig_lengths : pandas.Series
        Contig lengths indexed by name, in catalog order.
    resolution : int
        Bin size in bp.
    pairs : str or file-like
        Tab-delimited records ``read_name, contig1, pos1, contig2, pos2,
        strand1, strand2``. Lines starting with ``#`` are skipped.
    chunksize : int, optional
        Number of records parsed at once.

    Notes
    -----
    Records on unknown contigs and records with unparsable positions are
    skipped and reported as warnings. Positions are clamped to the extent of
    their contig.

    """

    def __init__(self, tig_lengths, resolution, pairs, chunksize=1_000_000):
        super().__init__(tig_lengths, resolution)
        if chunksize <= 0:
            raise ValueError("chunksize must be positive")
        self.pairs = pairs
        self.chunksize = chunksize
        self.n_records = 0
        self.n_skipped = 0

    def _read(self):
        return pd.read_csv(
            self.pairs,
            sep="\t",
            comment="#",
            header=None,
            names=PAIRS_COLUMNS,
            usecols=["chrom1", "pos1", "chrom2", "pos2"],
            dtype=str,
            chunksize=self.chunksize,
            on_bad_lines="warn",
        )

    def _bin_records(self, chunk):
        names = list(self.tig_lengths.index)
        lengths = self.tig_lengths.to_numpy()
        tig1 = pd.Categorical(chunk["chrom1"], categories=names).codes.astype(np.int64)
        tig2 = pd.Categorical(chunk["chrom2"], categories=names).codes.astype(np.int64)
        pos1 = pd.to_numeric(chunk["pos1"], errors="coerce").to_numpy(np.float64)
        pos2 = pd.to_numeric(chunk["pos2"], errors="coerce").to_numpy(np.float64)

        unknown = (tig1 < 0) | (tig2 < 0)
        unparsable = ~unknown & ~(_is_integral(pos1) & _is_integral(pos2))
        # code -1 picks the trailing sentinel
        padded = np.r_[lengths, 1]
        empty_tig = (padded[tig1] == 0) | (padded[tig2] == 0)
        bad = unknown | unparsable | empty_tig
        if np.any(bad):
            if np.any(unknown):
                missing = set(chunk["chrom1"][tig1 < 0].dropna())
                missing |= set(chunk["chrom2"][tig2 < 0].dropna())
                logger.warning(
                    f"Skipped {unknown.sum()} records on unknown contigs: "
                    + ", ".join(sorted(missing)[:5])
                )
            if np.any(unparsable | empty_tig):
                logger.warning(
                    f"Skipped {(unparsable | empty_tig).sum()} unparsable records"
                )
            self.n_skipped += int(bad.sum())
            keep = ~bad
            tig1, tig2 = tig1[keep], tig2[keep]
            pos1, pos2 = pos1[keep], pos2[keep]

        # clip before casting, huge positions overflow int64
        anchor1 = np.clip(pos1, 0, lengths[tig1] - 1).astype(np.int64)
        anchor2 = np.clip(pos2, 0, lengths[tig2] - 1).astype(np.int64)
        bin1 = self.chrom_offset[tig1] + anchor1 // self.resolution
        bin2 = self.chrom_offset[tig2] + anchor2 // self.resolution

        return pd.DataFrame({
            "bin1_id": np.minimum(bin1, bin2),
            "bin2_id": np.maximum(bin1, bin2),
        })

    def __iter__(self):
        self.n_records = 0
        self.n_skipped = 0
        for chunk in self._read():
            before = self.n_records
            self.n_records += len(chunk)
            if self.n_records // PROGRESS_EVERY > before // PROGRESS_EVERY:
                logger.info(f"{self.n_records:,} records processed")
            yield self._bin_records(chunk)

        if self.n_records and self.n_skipped == self.n_records:
            logger.warning("None of the pair records could be assigned to a contig")
        logger.info(
            f"Binned {self.n_records - self.n_skipped:,} of "
            f"{self.n_records:,} records at {self.resolution} bp"
        )
