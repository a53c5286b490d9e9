from __future__ import annotations

import numpy as np
import pandas as pd

from ._logging import get_logger
from .balance import balance_matrix
from .create import DEFAULT_CHUNKSIZE
from .create._ingest import ResGroupBuilder

__all__ = ["ZoomBuilder", "get_zooming_order", "zoom_matrix"]

logger = get_logger(__name__)


def get_zooming_order(
    resolutions: list[int],
    bases: list[int] | None = None
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    From a set of target resolutions and one or more base resolutions
    deduce the sequence of integer multiple aggregations that produces all
    targets starting from the base resolution(s).

    Each resolution is derived from the largest smaller resolution, base or
    target, that divides it evenly.

    Parameters
    ----------
    resolutions: sequence of int
        The target resolutions
    bases: sequence of int, optional
        The base resolutions for which data already exists.
        If not provided, the smallest resolution is assumed to be the base.

    Returns
    -------
    resn: 1D array
        Resolutions, sorted in ascending order.
    pred: 1D array
        Index of the predecessor resolution in `resn`. A value of -1 implies
        that the resolution is a base resolution.
    mult: 1D array
        Multiplier to go from predecessor to target resolution.

    Raises
    ------
    ValueError
        A target has no predecessor dividing it.

    """
    if bases is None or not len(bases):
        bases = {min(resolutions)}
    else:
        bases = set(int(b) for b in bases)

    resn = np.array(sorted(bases.union(int(r) for r in resolutions)))
    pred = -np.ones(len(resn), dtype=int)
    mult = -np.ones(len(resn), dtype=int)

    for i, target in enumerate(resn):
        if target in bases:
            continue
        for p in range(i - 1, -1, -1):
            if target % resn[p] == 0:
                pred[i] = p
                mult[i] = target // resn[p]
                break
        else:
            raise ValueError(
                f"Resolution {target} cannot be derived from "
                f"the base resolutions: {sorted(bases)}."
            )

    return resn, pred, mult


class ZoomBuilder(ResGroupBuilder):
    """
    Aggregate the pixels of a resolution group into coarser bins.

    Parameters
    ----------
    res_group : ResolutionGroup
        Source resolution.
    tig_lengths : pandas.Series
        Contig lengths indexed by name, in catalog order.
    resolution : int
        Target bin size; a multiple of the source resolution.
    chunksize : int, optional
        Number of source pixels processed at once.

    """

    def __init__(self, res_group, tig_lengths, resolution, chunksize=DEFAULT_CHUNKSIZE):
        super().__init__(tig_lengths, resolution)
        if self.resolution % res_group.resolution != 0:
            raise ValueError(
                f"Resolution {self.resolution} is not a multiple of "
                f"{res_group.resolution}."
            )
        self.res_group = res_group
        self.chunksize = chunksize

    def _bin_mapping(self):
        src_bins = self.res_group.bins()
        chrom = src_bins["chrom"].to_numpy()
        start = src_bins["start"].to_numpy()
        return self.chrom_offset[chrom] + start // self.resolution

    def __iter__(self):
        mapping = self._bin_mapping()
        chunks = self.res_group.pixel_chunks(self.chunksize)
        n_chunks = len(chunks)
        for i, chunk in enumerate(chunks):
            logger.info(
                f"Zooming {self.res_group.resolution} -> {self.resolution}: "
                f"chunk {i + 1}/{n_chunks}"
            )
            bin1 = mapping[chunk["bin1_id"]]
            bin2 = mapping[chunk["bin2_id"]]
            yield pd.DataFrame({
                "bin1_id": np.minimum(bin1, bin2),
                "bin2_id": np.maximum(bin1, bin2),
                "count": chunk["count"],
            })


def zoom_matrix(clr, resolutions, strategy=None, **balance_kws):
    """
    Add resolutions to a contact matrix by successive aggregation.

    Parameters
    ----------
    clr : ContactMatrix
        Matrix opened on a writeable store.
    resolutions : sequence of int
        Target resolutions. Those already present are left untouched.
    strategy : {"ICGW", "LEN", None}, optional
        Balance each new resolution with this strategy.
    balance_kws : optional
        Balancer options.

    Returns
    -------
    list
        New resolutions that could not be balanced.

    """
    existing = clr.resolutions
    if not existing:
        raise ValueError("The matrix has no resolution to zoom from.")
    resn, pred, _ = get_zooming_order(resolutions, existing)

    created = []
    for i, target in enumerate(resn):
        if pred[i] == -1:
            continue
        src = int(resn[pred[i]])
        logger.info(f"Building resolution {target} from {src}")
        clr.zoom(src, int(target))
        created.append(int(target))

    if strategy is None or not created:
        return []
    return balance_matrix(clr, created, strategy, **balance_kws)
