from datetime import datetime

import numpy as np
import simplejson as json

from .._logging import get_logger
from .._version import __format__, __format_version__, __version__
from ..errors import StorageModeError
from ..util import index_pixels, open_hdf5, partition
from . import (
    BIN1OFFSET_DTYPE,
    BIN_DTYPE,
    COORD_DTYPE,
    COUNT_DTYPE,
    PIXEL_FIELDS,
    RESOLUTIONS_GROUP,
    TIG_DTYPE,
    TIGID_DTYPE,
    TIGOFFSET_DTYPE,
    TIGSIZE_DTYPE,
    WEIGHT_DTYPE,
)

logger = get_logger("hicmatrix.io")


def write_tigs(grp, tig_lengths, h5opts):
    """
    Write the contig catalog.

    Parameters
    ----------
    grp : h5py.Group
        Group handle of an open HDF5 file with write permissions.
    tig_lengths : pandas.Series
        Contig lengths indexed by name, in catalog order.
    h5opts : dict
        HDF5 dataset filter options.

    """
    n_tigs = len(tig_lengths)
    names = np.array(tig_lengths.index, dtype=TIG_DTYPE)  # auto-adjusts char length
    grp.create_dataset(
        "name", shape=(n_tigs,), dtype=names.dtype, data=names, **h5opts
    )
    grp.create_dataset(
        "length",
        shape=(n_tigs,),
        dtype=TIGSIZE_DTYPE,
        data=np.asarray(tig_lengths.values),
        **h5opts
    )


def write_bins(grp, bins, h5opts):
    """
    Write the genomic bin table.

    Parameters
    ----------
    grp : h5py.Group
        Group handle of an open HDF5 file with write permissions.
    bins : pandas.DataFrame
        Columns ``chrom`` (integer contig id), ``start``, ``end``, sorted by
        contig then start.
    h5opts : dict
        HDF5 dataset filter options.

    """
    n_bins = len(bins)
    grp.create_dataset(
        "chrom", shape=(n_bins,), dtype=TIGID_DTYPE, data=bins["chrom"], **h5opts
    )
    grp.create_dataset(
        "start", shape=(n_bins,), dtype=COORD_DTYPE, data=bins["start"], **h5opts
    )
    grp.create_dataset(
        "end", shape=(n_bins,), dtype=COORD_DTYPE, data=bins["end"], **h5opts
    )


def write_indexes(grp, chrom_offset, bin1_offset, h5opts):
    """
    Write the indexes.

    Parameters
    ----------
    grp : h5py.Group
        Group handle of an open HDF5 file with write permissions.
    chrom_offset : sequence
        Lookup table: contig ID -> first row in bin table (bin ID)
        corresponding to that contig.
    bin1_offset : sequence
        Lookup table: genomic bin ID -> first row in pixel table (pixel ID)
        having that bin on the first axis.

    """
    grp.create_dataset(
        "chrom_offset",
        shape=(len(chrom_offset),),
        dtype=TIGOFFSET_DTYPE,
        data=chrom_offset,
        **h5opts
    )
    grp.create_dataset(
        "bin1_offset",
        shape=(len(bin1_offset),),
        dtype=BIN1OFFSET_DTYPE,
        data=bin1_offset,
        **h5opts
    )


def write_pixels(grp, pixels, h5opts, chunksize):
    """
    Write the non-zero pixel table, ``chunksize`` records at a time.

    Returns
    -------
    nnz, total : int
        Number of pixels written and their summed count.

    """
    n = len(pixels["bin1_id"])
    dtypes = {"bin1_id": BIN_DTYPE, "bin2_id": BIN_DTYPE, "count": COUNT_DTYPE}
    dsets = [
        grp.create_dataset(
            col, dtype=dtypes[col], shape=(0,), maxshape=(None,), **h5opts
        )
        for col in PIXEL_FIELDS
    ]

    nnz = 0
    total = 0
    for i, (lo, hi) in enumerate(partition(0, n, chunksize)):
        logger.debug(f"writing chunk {i}")
        for col, dset in zip(PIXEL_FIELDS, dsets):
            dset.resize((hi,))
            dset[lo:hi] = np.asarray(pixels[col][lo:hi])
        nnz = hi
        total += int(np.asarray(pixels["count"][lo:hi]).sum())
    return nnz, total


def write_info(grp, info):
    """
    Write the description and metadata attributes of a group.

    Parameters
    ----------
    grp : h5py.Group
        Group handle of an open HDF5 file with write permissions.
    info : dict
        Dictionary, unnested with the possible exception of the ``metadata``
        key. ``metadata``, if present, must be JSON-serializable.

    """
    info = dict(info)
    info["metadata"] = json.dumps(info.get("metadata", {}))
    info["creation-date"] = datetime.now().isoformat()
    info["generated-by"] = "hicmatrix-" + __version__
    grp.attrs.update(info)


def _set_h5opts(h5opts):
    result = {}
    if h5opts is not None:
        result.update(h5opts)
    available_opts = {
        "chunks",
        "compression",
        "compression_opts",
        "scaleoffset",
        "shuffle",
        "fletcher32",
        "fillvalue",
        "track_times",
    }
    for key in result.keys():
        if key not in available_opts:
            raise ValueError(f"Unknown storage option '{key}'.")
    result.setdefault("compression", "gzip")
    if result["compression"] == "gzip" and "compression_opts" not in result:
        result["compression_opts"] = 6
    result.setdefault("shuffle", True)
    return result


class MatrixWriter:
    """
    Writes a multi-resolution contact matrix store.

    Parameters
    ----------
    filepath : str or ``h5py.File``
        Path of the HDF5 store, or a file handle opened for writing. A
        handle is left open and cannot be used in ``"w"`` mode.
    mode : {"w", "a"}
        ``"w"`` creates the store, truncating any existing file. ``"a"``
        appends to an existing store; the file must already exist.
    h5opts : dict, optional
        HDF5 dataset filter options. Defaults to gzip level 6 with shuffle.

    Notes
    -----
    Writing balancing weights or other per-bin annotations requires append
    mode. Concurrent writers are not supported.

    """
    MODES = ("w", "a")

    def __init__(self, filepath, mode="w", h5opts=None):
        if mode not in self.MODES:
            raise ValueError(f"Unknown write mode '{mode}', expected 'w' or 'a'.")
        self.filepath = filepath
        self.mode = mode
        self.h5opts = _set_h5opts(h5opts)

        if mode == "w":
            with open_hdf5(filepath, "w") as f:
                write_info(f, {
                    "format": __format__,
                    "format-version": __format_version__,
                    "storage-mode": "symmetric-upper",
                })
                f.create_group(RESOLUTIONS_GROUP)
        else:
            # the store must exist and be writeable
            with open_hdf5(filepath, "r+") as f:
                if RESOLUTIONS_GROUP not in f:
                    raise StorageModeError(
                        f"'{filepath}' is not a multi-resolution matrix store."
                    )

    def __repr__(self):
        return f'<{self.__class__.__name__} "{self.filepath}" mode={self.mode}>'

    def _res_path(self, resolution):
        return f"{RESOLUTIONS_GROUP}/{int(resolution)}"

    def write_tigs(self, tig_lengths):
        """Write the contig catalog. Only allowed once, when creating."""
        if self.mode != "w":
            raise StorageModeError(
                "The contig catalog can only be written when creating a store."
            )
        with open_hdf5(self.filepath, "r+") as f:
            if "chroms" in f:
                raise ValueError("The contig catalog has already been written.")
            write_tigs(f.create_group("chroms"), tig_lengths, self.h5opts)
        logger.info(f"Wrote catalog of {len(tig_lengths)} contigs")

    def write_res_group(self, builder, chunksize=10_000_000):
        """
        Build the pixels of a resolution and persist the whole group.

        Parameters
        ----------
        builder : ResGroupBuilder
            Provides ``resolution``, ``bins``, ``chrom_offset`` and a
            ``build()`` method returning the sorted pixel table.
        chunksize : int, optional
            Number of pixels written per HDF5 write call.

        Returns
        -------
        dict
            The info attributes written to the group.

        """
        resolution = int(builder.resolution)
        path = self._res_path(resolution)
        with open_hdf5(self.filepath, "r") as f:
            if "chroms" not in f:
                raise ValueError("Write the contig catalog before any resolution.")
            if path in f:
                raise ValueError(f"Resolution {resolution} already exists.")
            n_tigs = len(f["chroms/length"])
        if n_tigs != len(builder.chrom_offset) - 1:
            raise ValueError(
                f"Builder has {len(builder.chrom_offset) - 1} contigs, "
                f"store catalog has {n_tigs}."
            )

        pixels = builder.build()
        bins = builder.bins
        n_bins = len(bins)
        bin1_offset = index_pixels(pixels["bin1_id"], n_bins)

        with open_hdf5(self.filepath, "r+") as f:
            grp = f.create_group(path)
            write_bins(grp.create_group("bins"), bins, self.h5opts)
            write_indexes(
                grp.create_group("indexes"),
                builder.chrom_offset,
                bin1_offset,
                self.h5opts,
            )
            nnz, total = write_pixels(
                grp.create_group("pixels"), pixels, self.h5opts, chunksize
            )
            info = {
                "bin-size": resolution,
                "nbins": n_bins,
                "nnz": nnz,
                "sum": total,
                "storage-mode": "symmetric-upper",
            }
            write_info(grp, info)
        logger.info(
            f"Wrote resolution {resolution}: {n_bins} bins, {nnz} pixels"
        )
        return info

    def _write_bin_column(self, resolution, name, values, attrs=None):
        if self.mode != "a":
            raise StorageModeError(
                f"Writing '{name}' requires a store opened in append mode."
            )
        path = self._res_path(resolution)
        values = np.asarray(values, dtype=WEIGHT_DTYPE)
        with open_hdf5(self.filepath, "r+") as f:
            if path not in f:
                raise ValueError(f"Resolution {resolution} does not exist.")
            grp = f[path]["bins"]
            n_bins = len(grp["chrom"])
            if len(values) != n_bins:
                raise ValueError(
                    f"Expected {n_bins} values for '{name}', got {len(values)}."
                )
            if name in grp:
                del grp[name]
            dset = grp.create_dataset(
                name, shape=(n_bins,), dtype=WEIGHT_DTYPE, data=values,
                **self.h5opts
            )
            if attrs:
                dset.attrs.update(attrs)

    def write_weights(self, resolution, weights, stats=None, name="weight"):
        """
        Store balancing weights for a resolution, replacing existing ones.
        NaN marks bins that were filtered out.

        """
        attrs = None
        if stats is not None:
            attrs = {
                k: v for k, v in stats.items()
                if isinstance(v, (int, float, bool, str, np.generic))
            }
        self._write_bin_column(resolution, name, weights, attrs)
        logger.info(f"Wrote '{name}' for resolution {resolution}")

    def write_max_vals(self, resolution, values):
        """Store the per-bin maximum trans-contig balanced value."""
        self._write_bin_column(resolution, "max_val", values)
        logger.info(f"Wrote 'max_val' for resolution {resolution}")

