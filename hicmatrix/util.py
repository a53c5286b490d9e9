from contextlib import contextmanager
import os

import numpy as np
import pandas as pd
import h5py

from .errors import BadInputError


def partition(start, stop, step):
    """Partition an integer interval into equally-sized subintervals.
    Like builtin :py:func:`range`, but yields pairs of end points.

    Examples
    --------
    >>> for lo, hi in partition(0, 9, 2):
           print(lo, hi)
    0 2
    2 4
    4 6
    6 8
    8 9

    """
    return ((i, min(i + step, stop))
            for i in range(start, stop, step))


def read_tig_lengths(filepath_or, sort=True, **kwargs):
    """
    Parse a two-column, tab-delimited table of contig names and lengths.

    Parameters
    ----------
    filepath_or : str or file-like
        Path to text file, or buffer.
    sort : bool, optional
        Order contigs by increasing length. The sort is stable, so contigs of
        equal length keep their order of appearance.

    Returns
    -------
    :py:class:`pandas.Series`
        Series of integer bp lengths indexed by contig name.

    """
    if isinstance(filepath_or, str) and filepath_or.endswith('.gz'):
        kwargs.setdefault('compression', 'gzip')
    table = pd.read_csv(
        filepath_or, sep='\t', usecols=[0, 1], names=['name', 'length'],
        dtype={'name': str}, comment='#', header=None, **kwargs)

    lengths = pd.to_numeric(table['length'], errors='coerce')
    if lengths.isnull().any() or (lengths < 0).any():
        bad = table.loc[lengths.isnull() | (lengths < 0), 'name'].tolist()
        raise BadInputError(
            "Invalid contig lengths for: {}".format(', '.join(bad[:10])))
    if table['name'].duplicated().any():
        dupes = table.loc[table['name'].duplicated(), 'name'].tolist()
        raise BadInputError(
            "Duplicate contig names: {}".format(', '.join(dupes[:10])))

    table['length'] = lengths.astype(np.int64)
    if sort:
        table = table.sort_values('length', kind='mergesort')
    table.index = table['name'].values
    return table['length']


def tig_offsets(tig_lengths, binsize):
    """
    Global bin id of the first bin of each contig, plus a terminal entry
    holding the total number of bins.

    """
    lengths = np.asarray(tig_lengths, dtype=np.int64)
    n_bins = -(-lengths // binsize)
    return np.r_[0, np.cumsum(n_bins)].astype(np.int64)


def binnify(tig_lengths, binsize):
    """
    Divide the contigs into evenly sized bins.

    Parameters
    ----------
    tig_lengths : Series or sequence
        Contig lengths in bp, in catalog order.
    binsize : int
        Size of bins in bp.

    Returns
    -------
    bins : :py:class:`pandas.DataFrame`
        Dataframe with columns: ``chrom`` (integer contig id), ``start``,
        ``end``. The last bin of each contig is truncated to its length.

    """
    if binsize <= 0:
        raise ValueError("Bin size must be positive, got {}".format(binsize))
    lengths = np.asarray(tig_lengths, dtype=np.int64)
    offsets = tig_offsets(lengths, binsize)
    n_bins = np.diff(offsets)

    chrom = np.repeat(np.arange(len(lengths), dtype=np.int32), n_bins)
    rel_id = np.arange(offsets[-1], dtype=np.int64) - np.repeat(offsets[:-1], n_bins)
    start = rel_id * binsize
    end = np.minimum(start + binsize, np.repeat(lengths, n_bins))

    return pd.DataFrame({
        'chrom': chrom,
        'start': start,
        'end': end,
    }, columns=['chrom', 'start', 'end'])


def index_pixels(bin1_ids, n_bins):
    """
    Build the row offset index of a sorted pixel table.

    Entry ``k`` is the position of the first pixel whose ``bin1_id`` is at
    least ``k``. The last entry equals the number of pixels.

    """
    bin1_ids = np.asarray(bin1_ids)
    return np.searchsorted(
        bin1_ids, np.arange(n_bins + 1), side='left').astype(np.int64)


def mad(data, axis=None):
    return np.median(np.abs(data - np.median(data, axis)), axis)


@contextmanager
def open_hdf5(fp, mode='r', *args, **kwargs):
    """
    Context manager like ``h5py.File`` but accepts already open HDF5 file
    handles which do not get closed on teardown.

    Parameters
    ----------
    fp : str or ``h5py.File`` object
        If an open file object is provided, it passes through unchanged,
        provided that the requested mode is compatible.
        If a filepath is passed, the context manager will close the file on
        tear down.

    mode : str
        * r        Readonly, file must exist
        * r+       Read/write, file must exist
        * a        Read/write if exists, create otherwise
        * w        Truncate if exists, create otherwise
        * w- or x  Fail if exists, create otherwise

    """
    if isinstance(fp, (str, os.PathLike)):
        own_fh = True
        fh = h5py.File(fp, mode, *args, **kwargs)
    else:
        own_fh = False
        if mode in ('r+', 'a') and fp.file.mode == 'r':
            raise ValueError("File object provided is not writeable")
        elif mode == 'w':
            raise ValueError("Cannot truncate open file")
        elif mode in ('w-', 'x'):
            raise ValueError("File exists")
        fh = fp
    try:
        yield fh
    finally:
        if own_fh:
            fh.close()


def attrs_to_jsonable(attrs):
    out = dict(attrs)
    for k, v in attrs.items():
        if isinstance(v, np.generic):
            out[k] = v.item()
        elif isinstance(v, np.ndarray):
            out[k] = v.tolist()
        elif isinstance(v, bytes):
            out[k] = v.decode('utf-8')
    return out
