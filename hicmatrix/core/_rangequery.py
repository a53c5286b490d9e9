import numpy as np
from cytoolz import compose

from ..io import COUNT_DTYPE
from ..util import partition

EQUAL = "equal"
DISJOINT = "disjoint"
NESTED = "nested"
OVERLAPPING = "overlapping"


def _comes_before(a0, a1, b0, b1):
    # a starts first, or starts together with b but ends no earlier
    return a0 < b0 or (a0 == b0 and a1 >= b1)


def _contains(a0, a1, b0, b1):
    return a0 <= b0 and b1 <= a1


def _intersects(a0, a1, b0, b1):
    return a0 <= b1 and b0 <= a1


def concat(*dcts):
    if not dcts:
        return {}
    return {key: np.concatenate([dct[key] for dct in dcts]) for key in dcts[0]}


def transpose(dct):
    x, y = dct["bin1_id"], dct["bin2_id"]
    dct["bin1_id"], dct["bin2_id"] = y, x
    return dct


def mirror(dct):
    """
    Complete a square upper-triangular block with its lower triangle.
    Diagonal entries are kept once.

    """
    off = dct["bin1_id"] != dct["bin2_id"]
    lower = transpose({key: arr[off] for key, arr in dct.items()})
    return concat(dct, lower)


def normalize_windows(i0, i1, j0, j1):
    """
    Order two windows so that the row window comes first.

    Returns
    -------
    (i0, i1, j0, j1, swapped)

    """
    if _comes_before(i0, i1, j0, j1):
        return i0, i1, j0, j1, False
    return j0, j1, i0, i1, True


def classify_windows(i0, i1, j0, j1):
    """
    Relationship between an ordered pair of windows ``[i0, i1)`` and
    ``[j0, j1)``, as produced by :func:`normalize_windows`.

    Touching windows (``i1 == j0``) are classified as overlapping with an
    empty overlap.

    """
    if (i0, i1) == (j0, j1):
        return EQUAL
    if not _intersects(i0, i1, j0, j1):
        return DISJOINT
    if _contains(i0, i1, j0, j1):
        return NESTED
    if i0 < j0 and i1 <= j1:
        return OVERLAPPING
    raise RuntimeError(
        f"Unordered query windows [{i0}, {i1}) x [{j0}, {j1})."
    )


def overlap_breakpoints(kind, i0, i1, j0, j1):
    """Bounds ``[lo, hi)`` of the part of the matrix queried symmetrically."""
    if kind == EQUAL:
        return i0, i1
    elif kind == DISJOINT:
        return j0, j0
    elif kind == NESTED:
        return j0, j1
    elif kind == OVERLAPPING:
        return j0, i1
    raise RuntimeError(f"Unknown window relationship '{kind}'.")


class TriuReader:
    """
    Reads physically stored blocks of an upper-triangular pixel table.

    Parameters
    ----------
    reader : ResGroupReader
        Provides ``read_pixels(lo, hi)``.
    bin1_offsets : 1D array
        The offsets of each bin1 in the pixel table (aka indptr).
    chunksize : int
        Maximum number of pixels read from storage at once.

    """

    def __init__(self, reader, bin1_offsets, chunksize=10_000_000):
        self.reader = reader
        self.bin1_offsets = np.asarray(bin1_offsets)
        self.chunksize = chunksize

    def empty(self):
        return {
            "bin1_id": np.empty((0,), dtype=np.int64),
            "bin2_id": np.empty((0,), dtype=np.int64),
            "count": np.empty((0,), dtype=COUNT_DTYPE),
        }

    def fetch_stored_block(self, i0, i1, j0, j1):
        """
        Stored pixels with ``bin1`` in ``[i0, i1)`` and ``bin2`` in
        ``[j0, j1)``. Cells below the diagonal are never stored, so they are
        never returned.

        """
        if i1 <= i0 or j1 <= j0:
            return self.empty()

        lo, hi = int(self.bin1_offsets[i0]), int(self.bin1_offsets[i1])
        chunks = []
        for start, stop in partition(lo, hi, self.chunksize):
            chunk = self.reader.read_pixels(start, stop)
            bin2 = chunk["bin2_id"]
            mask = (bin2 >= j0) & (bin2 < j1)
            chunks.append({key: arr[mask] for key, arr in chunk.items()})

        if not chunks:
            return self.empty()
        return concat(*chunks)


class Selector:
    """
    Range queries over a symmetric matrix stored as its upper triangle.

    Parameters
    ----------
    reader : ResGroupReader
        Source of pixel data.
    bin1_offsets : 1D array
        Row offset index of the pixel table.
    weights : 1D array, optional
        Balancing weights. Required for balanced queries.
    chunksize : int, optional
        Maximum number of pixels read from storage at once.

    """

    def __init__(self, reader, bin1_offsets, weights=None, chunksize=10_000_000):
        self.triu = TriuReader(reader, bin1_offsets, chunksize)
        self.n_bins = len(bin1_offsets) - 1
        self.weights = None if weights is None else np.asarray(weights)

    def fetch_stored_block(self, i0, i1, j0, j1):
        return self.triu.fetch_stored_block(i0, i1, j0, j1)

    def _split_and_mirror(self, i0, i1, j0, j1, lo, hi):
        fetch = self.triu.fetch_stored_block
        blocks = [
            # rows preceding the overlap
            fetch(i0, min(lo, i1), j0, j1),
            # overlap
            mirror(fetch(lo, hi, lo, hi)),
            # overlap rows, columns past the overlap
            fetch(lo, hi, hi, j1),
            # rows past the overlap, read from the upper triangle
            transpose(fetch(lo, hi, hi, i1)),
        ]
        return concat(*blocks)

    def _query(self, i0, i1, j0, j1):
        kind = classify_windows(i0, i1, j0, j1)
        lo, hi = overlap_breakpoints(kind, i0, i1, j0, j1)
        return self._split_and_mirror(i0, i1, j0, j1, lo, hi)

    def select(self, i0, i1, j0, j1, balance=False):
        """
        All nonzero entries with row in ``[i0, i1)`` and column in
        ``[j0, j1)``.

        Parameters
        ----------
        i0, i1, j0, j1 : int
            Row and column windows.
        balance : bool, optional
            Add a ``balanced`` column equal to ``count * w[row] * w[col]``.

        Returns
        -------
        dict with keys ``bin1_id`` (row), ``bin2_id`` (column), ``count``
        and, if balanced, ``balanced``.

        """
        if balance and self.weights is None:
            raise ValueError("No balancing weights available for this resolution.")

        a0, a1, b0, b1, swapped = normalize_windows(i0, i1, j0, j1)
        query = compose(transpose, self._query) if swapped else self._query
        dct = query(a0, a1, b0, b1)

        if balance:
            w = self.weights
            dct["balanced"] = (
                dct["count"] * w[dct["bin1_id"]] * w[dct["bin2_id"]]
            )
        return dct
