"""
Best trans-contig contact of each bin.

For every bin, the largest balanced value among its contacts with bins on
other contigs. Scaffolding uses it to rank candidate joins.

"""
import numpy as np

from ._logging import get_logger
from .create import DEFAULT_CHUNKSIZE

__all__ = ["compute_trans_max", "store_trans_max"]

logger = get_logger(__name__)


def compute_trans_max(res_group, tig_lengths, length_cutoff=0, chunksize=DEFAULT_CHUNKSIZE):
    """
    Per-bin maximum of the balanced trans-contig values.

    Parameters
    ----------
    res_group : ResolutionGroup
        A balanced resolution.
    tig_lengths : pandas.Series or 1D array
        Contig lengths in catalog order.
    length_cutoff : int, optional
        Only consider pixels between two contigs at least this long.
    chunksize : int, optional
        Number of pixels streamed at once.

    Returns
    -------
    1D array
        NaN for bins without any qualifying pixel.

    """
    lengths = np.asarray(tig_lengths)
    bin_tigs = res_group.bin_chrom_ids()
    long_enough = lengths[bin_tigs] >= length_cutoff

    maxs = np.zeros(res_group.n_bins)
    for chunk in res_group.pixel_chunks(chunksize, balance=True):
        bin1, bin2 = chunk["bin1_id"], chunk["bin2_id"]
        values = chunk["balanced"]
        mask = (
            (bin_tigs[bin1] != bin_tigs[bin2])
            & long_enough[bin1]
            & long_enough[bin2]
            & np.isfinite(values)
        )
        np.maximum.at(maxs, bin1[mask], values[mask])
        np.maximum.at(maxs, bin2[mask], values[mask])

    maxs[maxs == 0] = np.nan
    logger.info(
        f"Trans maximum found for {int(np.isfinite(maxs).sum())} of "
        f"{res_group.n_bins} bins at {res_group.resolution} bp"
    )
    return maxs


def store_trans_max(clr, resolutions=None, length_cutoff=0):
    """Compute and store the trans maximum for resolutions of a matrix."""
    if resolutions is None:
        resolutions = clr.resolutions
    for res in resolutions:
        logger.info(f"Adding max trans value of each bin. Resolution {res}")
        clr.store_trans_max(res, length_cutoff)
