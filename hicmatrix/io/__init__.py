import numpy as np

TIG_DTYPE = np.dtype('S')
TIGID_DTYPE = np.int32
TIGSIZE_DTYPE = np.int64
COORD_DTYPE = np.int64
BIN_DTYPE = np.int64
COUNT_DTYPE = np.int64
WEIGHT_DTYPE = np.float64
TIGOFFSET_DTYPE = np.int64
BIN1OFFSET_DTYPE = np.int64
PIXEL_FIELDS = ('bin1_id', 'bin2_id', 'count')
RESOLUTIONS_GROUP = 'resolutions'

from ._reader import MatrixReader, ResGroupReader, get
from ._writer import (
    MatrixWriter,
    write_tigs,
    write_bins,
    write_indexes,
    write_pixels,
    write_info,
)

__all__ = [
    "MatrixReader",
    "ResGroupReader",
    "MatrixWriter",
    "get",
    "write_tigs",
    "write_bins",
    "write_indexes",
    "write_pixels",
    "write_info",
]
