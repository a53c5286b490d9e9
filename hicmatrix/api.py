from __future__ import annotations

from typing import Iterator

import numpy as np
import pandas as pd
from scipy.sparse import coo_matrix

from .balance import compute_weights
from .core import Selector
from .create import DEFAULT_CHUNKSIZE
from .errors import MatrixIndexError, ResolutionError, SelectorUninitError
from .io import MatrixReader, MatrixWriter, ResGroupReader
from .reduce import ZoomBuilder
from .trans import compute_trans_max
from .util import partition

__all__ = ["ContactMatrix", "ResolutionGroup", "PixelChunks"]


def _apply_weights(chunk: dict, weights: np.ndarray) -> dict:
    chunk["balanced"] = (
        chunk["count"] * weights[chunk["bin1_id"]] * weights[chunk["bin2_id"]]
    )
    return chunk


class PixelChunks:
    """
    Finite iterator over consecutive chunks of a range of stored pixels.

    Each chunk is a dict of arrays ``bin1_id``, ``bin2_id``, ``count`` and,
    if weights are given, ``balanced``. The iterator is consumed once; ask
    the resolution group for a new one to iterate again.

    """

    def __init__(
        self,
        reader: ResGroupReader,
        chunksize: int,
        lo: int,
        hi: int,
        weights: np.ndarray | None = None,
    ):
        if chunksize <= 0:
            raise ValueError(f"chunksize must be positive, got {chunksize}")
        self.reader = reader
        self.chunksize = chunksize
        self.lo = lo
        self.hi = hi
        self.weights = weights
        self._spans = partition(lo, hi, chunksize)

    def __len__(self) -> int:
        return -(-(self.hi - self.lo) // self.chunksize)

    def __iter__(self) -> Iterator[dict]:
        return self

    def __next__(self) -> dict:
        lo, hi = next(self._spans)
        chunk = self.reader.read_pixels(lo, hi)
        if self.weights is not None:
            chunk = _apply_weights(chunk, self.weights)
        return chunk


class ResolutionGroup:
    """
    Handle to one resolution of a contact matrix.

    A group starts out holding metadata only. Range queries need the row
    offset index and the weights resident in memory, which is done by an
    explicit call to :py:meth:`init_selector`.

    Parameters
    ----------
    reader : ResGroupReader
        Storage access for the resolution.
    chunksize : int, optional
        Maximum number of pixels read from storage at once by queries.

    """

    def __init__(self, reader: ResGroupReader, chunksize: int = DEFAULT_CHUNKSIZE):
        self.reader = reader
        self.resolution = reader.resolution
        self.n_bins = reader.n_bins
        self.n_pixels = reader.n_pixels
        self.chunksize = chunksize
        self._selector = None

    def __repr__(self) -> str:
        state = "query-ready" if self.is_query_ready else "metadata-only"
        return (
            f"<ResolutionGroup {self.resolution} bp: {self.n_bins} bins, "
            f"{self.n_pixels} pixels, {state}>"
        )

    @property
    def is_query_ready(self) -> bool:
        return self._selector is not None

    def init_selector(self) -> ResolutionGroup:
        """Load the offset index and weights and enable range queries."""
        self._selector = Selector(
            self.reader,
            self.reader.read_bin1_offsets(),
            self.reader.read_weights(),
            self.chunksize,
        )
        return self

    def drop_selector(self) -> None:
        self._selector = None

    @property
    def selector(self) -> Selector:
        if self._selector is None:
            raise SelectorUninitError(
                f"Query engine of resolution {self.resolution} is not "
                "initialized; call init_selector() first."
            )
        return self._selector

    def _check_window(self, i0: int, i1: int, j0: int, j1: int) -> None:
        n = self.n_bins
        if not (0 <= i0 < i1 <= n and 0 <= j0 < j1 <= n):
            raise MatrixIndexError(
                f"Invalid window [{i0}, {i1}) x [{j0}, {j1}) for a matrix "
                f"with {n} bins."
            )

    def _check_bin(self, k: int) -> None:
        if not 0 <= k < self.n_bins:
            raise MatrixIndexError(
                f"Bin {k} out of range for a matrix with {self.n_bins} bins."
            )

    # Metadata

    def info(self) -> dict:
        return self.reader.info()

    def bins(self) -> pd.DataFrame:
        return self.reader.read_bins()

    def bin_coords(self) -> np.ndarray:
        """``(n_bins, 2)`` array of bin start and end coordinates."""
        bins = self.reader.read_bins()
        return bins[["start", "end"]].to_numpy()

    def bin_chrom_ids(self) -> np.ndarray:
        return self.reader.read_bin_column("chrom")

    def chrom_offsets(self) -> np.ndarray:
        return self.reader.read_chrom_offsets()

    def weights(self) -> np.ndarray | None:
        return self.reader.read_weights()

    def trans_max(self) -> np.ndarray:
        return self.reader.read_max_vals()

    # Streaming access

    def _check_pixel_range(self, lo: int, hi: int | None) -> int:
        hi = self.n_pixels if hi is None else hi
        if not 0 <= lo <= hi <= self.n_pixels:
            raise MatrixIndexError(
                f"Invalid pixel range [{lo}, {hi}) for {self.n_pixels} pixels."
            )
        return hi

    def _require_weights(self) -> np.ndarray:
        weights = self.reader.read_weights()
        if weights is None:
            raise ValueError(
                f"Resolution {self.resolution} has no balancing weights."
            )
        return weights

    def pixel_chunks(
        self,
        chunksize: int = DEFAULT_CHUNKSIZE,
        lo: int = 0,
        hi: int | None = None,
        balance: bool = False,
    ) -> PixelChunks:
        """
        Iterate over the stored pixels ``[lo, hi)`` in chunks.

        Parameters
        ----------
        chunksize : int, optional
            Number of pixels per chunk.
        lo, hi : int, optional
            Pixel range, defaults to all pixels.
        balance : bool, optional
            Add a ``balanced`` column to every chunk.

        """
        hi = self._check_pixel_range(lo, hi)
        weights = self._require_weights() if balance else None
        return PixelChunks(self.reader, chunksize, lo, hi, weights)

    def raw_pixels(self, lo: int = 0, hi: int | None = None) -> pd.DataFrame:
        hi = self._check_pixel_range(lo, hi)
        return pd.DataFrame(self.reader.read_pixels(lo, hi))

    def balanced_pixels(self, lo: int = 0, hi: int | None = None) -> pd.DataFrame:
        hi = self._check_pixel_range(lo, hi)
        chunk = _apply_weights(self.reader.read_pixels(lo, hi), self._require_weights())
        return pd.DataFrame(chunk)

    # Range queries

    def select(
        self, i0: int, i1: int, j0: int, j1: int, balance: bool = False
    ) -> dict:
        """
        Nonzero entries of the window ``[i0, i1) x [j0, j1)`` as a dict of
        ``bin1_id`` (row), ``bin2_id`` (column), ``count`` and, if balanced,
        ``balanced`` arrays.

        """
        selector = self.selector
        self._check_window(i0, i1, j0, j1)
        return selector.select(i0, i1, j0, j1, balance=balance)

    def submatrix(
        self,
        i0: int,
        i1: int,
        j0: int,
        j1: int,
        balance: bool = True,
        sparse: bool = False,
    ) -> np.ndarray | coo_matrix:
        """
        The window ``[i0, i1) x [j0, j1)`` as a dense array or a
        :py:class:`scipy.sparse.coo_matrix`. Balanced entries involving a
        filtered-out bin are left empty.

        """
        dct = self.select(i0, i1, j0, j1, balance=balance)
        field = "balanced" if balance else "count"
        values = dct[field]
        mask = np.isfinite(values)
        mat = coo_matrix(
            (values[mask], (dct["bin1_id"][mask] - i0, dct["bin2_id"][mask] - j0)),
            shape=(i1 - i0, j1 - j0),
        )
        return mat if sparse else mat.toarray()

    def balanced_row(self, row: int) -> np.ndarray:
        self._check_bin(row)
        return self.submatrix(row, row + 1, 0, self.n_bins)[0]

    def balanced_column(self, col: int) -> np.ndarray:
        self._check_bin(col)
        return self.submatrix(0, self.n_bins, col, col + 1)[:, 0]

    def balanced_row_nnz(self, row: int) -> tuple[np.ndarray, np.ndarray]:
        """
        Finite balanced entries of a row.

        Returns
        -------
        cols, values : 1D arrays
            Column ids in increasing order and the matching values.

        """
        self._check_bin(row)
        dct = self.select(row, row + 1, 0, self.n_bins, balance=True)
        values = dct["balanced"]
        mask = np.isfinite(values)
        cols, values = dct["bin2_id"][mask], values[mask]
        order = np.argsort(cols, kind="stable")
        return cols[order], values[order]


class ContactMatrix:
    """
    A multi-resolution contact matrix backed by an HDF5 store.

    Parameters
    ----------
    filepath : str
        Path to a store created by :py:class:`hicmatrix.io.MatrixWriter`.
    chunksize : int, optional
        Pixels streamed per chunk by balancing, zooming and queries.

    Notes
    -----
    The file is opened only for the duration of each operation. Resolutions
    can be added but never removed.

    """

    def __init__(self, filepath: str, chunksize: int = DEFAULT_CHUNKSIZE):
        self.filepath = filepath
        self.chunksize = chunksize
        self.reader = MatrixReader(filepath)
        self._tig_lengths = self.reader.read_tigs()
        self._tig_ids = dict(zip(self._tig_lengths.index, range(len(self._tig_lengths))))
        self._groups = {}
        for resolution in self.reader.read_resolutions():
            self._register(resolution)

    def __repr__(self) -> str:
        return f'<ContactMatrix "{self.filepath}" resolutions={self.resolutions}>'

    def __contains__(self, resolution: int) -> bool:
        return int(resolution) in self._groups

    def __getitem__(self, resolution: int) -> ResolutionGroup:
        return self.res_group(resolution)

    def _register(self, resolution: int) -> ResolutionGroup:
        grp = ResolutionGroup(self.reader.res_group(resolution), self.chunksize)
        self._groups[grp.resolution] = grp
        return grp

    @property
    def info(self) -> dict:
        return self.reader.info()

    @property
    def tig_lengths(self) -> pd.Series:
        return self._tig_lengths

    @property
    def tig_names(self) -> list:
        return list(self._tig_lengths.index)

    @property
    def n_tigs(self) -> int:
        return len(self._tig_lengths)

    def tig_id(self, name: str) -> int:
        try:
            return self._tig_ids[name]
        except KeyError:
            raise KeyError(f"Unknown contig '{name}'.") from None

    @property
    def resolutions(self) -> list:
        return sorted(self._groups)

    def res_group(self, resolution: int) -> ResolutionGroup:
        try:
            return self._groups[int(resolution)]
        except KeyError:
            raise ResolutionError(
                f"Resolution {resolution} not found; available: {self.resolutions}"
            ) from None

    def init_selectors(self) -> None:
        for grp in self._groups.values():
            grp.init_selector()

    def balance(self, resolution: int, strategy: str = "ICGW", **kwargs):
        """
        Compute and store balancing weights for a resolution.

        Parameters
        ----------
        resolution : int
            Resolution to balance.
        strategy : {"ICGW", "LEN"}
            Genome-wide iterative correction, or weights inversely
            proportional to the bin size.
        kwargs : optional
            Balancer options, see :py:class:`hicmatrix.balance.Balancer`.

        Returns
        -------
        weights, stats

        Raises
        ------
        BalancingError
            The matrix is degenerate; no weights are stored.

        """
        grp = self.res_group(resolution)
        kwargs.setdefault("chunksize", self.chunksize)
        weights, stats = compute_weights(grp, strategy, **kwargs)
        MatrixWriter(self.filepath, "a").write_weights(grp.resolution, weights, stats)
        if grp.is_query_ready:
            grp.init_selector()
        return weights, stats

    def zoom(self, from_res: int, to_res: int) -> ResolutionGroup:
        """Aggregate an existing resolution into a new, coarser one."""
        if int(to_res) in self._groups:
            raise ValueError(f"Resolution {to_res} already exists.")
        src = self.res_group(from_res)
        builder = ZoomBuilder(src, self._tig_lengths, to_res, self.chunksize)
        MatrixWriter(self.filepath, "a").write_res_group(builder)
        return self._register(to_res)

    def store_trans_max(self, resolution: int, length_cutoff: int = 0) -> np.ndarray:
        """
        Compute and store the per-bin maximum balanced trans-contig value.
        Requires balancing weights.

        """
        grp = self.res_group(resolution)
        values = compute_trans_max(
            grp, self._tig_lengths, length_cutoff, self.chunksize
        )
        MatrixWriter(self.filepath, "a").write_max_vals(grp.resolution, values)
        return values
