import numpy as np
import pandas as pd

from ..errors import ResolutionError
from ..util import attrs_to_jsonable, open_hdf5
from . import PIXEL_FIELDS, RESOLUTIONS_GROUP


def get(grp, lo=0, hi=None, fields=None, as_dict=False):
    """
    Query a range of rows from a table as a dataframe.

    A table is an HDF5 group containing equal-length 1D datasets serving as
    columns.

    Parameters
    ----------
    grp : ``h5py.Group`` or any dict-like of array-likes
        Handle to an HDF5 group containing only 1D datasets or any similar
        collection of 1D datasets or arrays
    lo, hi : int, optional
        Range of rows to select from the table.
    fields : str or sequence of str, optional
        Column or list of columns to query. Defaults to all available columns.
        A single string returns a Series instead of a DataFrame.
    as_dict : bool, optional
        Return a dict of arrays instead of a pandas object.

    Returns
    -------
    DataFrame, Series or dict

    Notes
    -----
    HDF5 ASCII datasets are converted to Unicode.

    """
    series = False
    if fields is None:
        fields = list(grp.keys())
    elif isinstance(fields, str):
        fields = [fields]
        series = True

    data = {}
    for field in fields:
        dset = grp[field]
        if dset.dtype.type == np.bytes_:
            data[field] = dset[lo:hi].astype("U")
        else:
            data[field] = dset[lo:hi]

    if as_dict:
        return data

    if data and lo is not None:
        index = np.arange(lo, lo + len(next(iter(data.values()))))
    else:
        index = None

    if series:
        return pd.Series(data[fields[0]], index=index, name=fields[0])
    else:
        return pd.DataFrame(data, columns=fields, index=index)


class MatrixReader:
    """
    Read access to a multi-resolution contact matrix store.

    Each call opens and closes the file, so instances hold no file handles,
    unless an open ``h5py.File`` is passed in place of a path.

    """

    def __init__(self, filepath):
        self.filepath = filepath

    def __repr__(self):
        return f'<{self.__class__.__name__} "{self.filepath}">'

    def info(self):
        with open_hdf5(self.filepath, "r") as f:
            return attrs_to_jsonable(f.attrs)

    def read_tigs(self):
        """Contig lengths as a Series indexed by name, in catalog order."""
        with open_hdf5(self.filepath, "r") as f:
            tigs = get(f["chroms"], fields=["name", "length"])
        return pd.Series(
            tigs["length"].values, index=tigs["name"].values, name="length"
        )

    def read_resolutions(self):
        """Sorted list of the resolutions present in the store."""
        with open_hdf5(self.filepath, "r") as f:
            if RESOLUTIONS_GROUP not in f:
                return []
            return sorted(int(r) for r in f[RESOLUTIONS_GROUP].keys())

    def res_group(self, resolution):
        return ResGroupReader(self.filepath, resolution)


class ResGroupReader:
    """
    Read access to one resolution of a matrix store.

    Whole arrays are returned for the per-bin tables and indexes; pixels are
    read by element range so they can be streamed in chunks.

    """

    def __init__(self, filepath, resolution):
        self.filepath = filepath
        self.resolution = int(resolution)
        self.root = f"{RESOLUTIONS_GROUP}/{self.resolution}"
        with open_hdf5(self.filepath, "r") as f:
            if self.root not in f:
                raise ResolutionError(
                    f"Resolution {self.resolution} not found in '{filepath}'."
                )
            grp = f[self.root]
            self._n_bins = len(grp["bins/chrom"])
            self._n_pixels = len(grp["pixels/bin1_id"])

    def __repr__(self):
        return (
            f'<{self.__class__.__name__} "{self.filepath}::{self.root}">'
        )

    @property
    def n_bins(self):
        return self._n_bins

    @property
    def n_pixels(self):
        return self._n_pixels

    def info(self):
        with open_hdf5(self.filepath, "r") as f:
            return attrs_to_jsonable(f[self.root].attrs)

    def read_bins(self, lo=0, hi=None):
        with open_hdf5(self.filepath, "r") as f:
            return get(f[self.root]["bins"], lo, hi)

    def read_bin_column(self, name, lo=0, hi=None):
        """A single bin table column, or None if it has not been written."""
        with open_hdf5(self.filepath, "r") as f:
            grp = f[self.root]["bins"]
            if name not in grp:
                return None
            return grp[name][lo:hi]

    def has_weights(self, name="weight"):
        with open_hdf5(self.filepath, "r") as f:
            return name in f[self.root]["bins"]

    def read_weights(self, name="weight"):
        return self.read_bin_column(name)

    def read_max_vals(self):
        """
        Per-bin best trans value. Bins without a value, and stores where it
        was never computed, read as zero.

        """
        values = self.read_bin_column("max_val")
        if values is None:
            return np.zeros(self.n_bins)
        return np.nan_to_num(values, nan=0.0)

    def read_chrom_offsets(self):
        with open_hdf5(self.filepath, "r") as f:
            return f[self.root]["indexes/chrom_offset"][:]

    def read_bin1_offsets(self):
        with open_hdf5(self.filepath, "r") as f:
            return f[self.root]["indexes/bin1_offset"][:]

    def read_pixels(self, lo=0, hi=None, fields=PIXEL_FIELDS):
        """
        Read a range of pixels.

        Parameters
        ----------
        lo, hi : int, optional
            Element range of the pixel arrays.

        Returns
        -------
        dict of column name -> array

        """
        with open_hdf5(self.filepath, "r") as f:
            return get(f[self.root]["pixels"], lo, hi, list(fields), as_dict=True)

