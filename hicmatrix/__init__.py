"""
hicmatrix
~~~~~~~~~

Multi-resolution Hi-C contact matrices stored as upper-triangular sparse
pixel tables in HDF5, with range queries and matrix balancing.

"""
from ._logging import get_verbosity_level, set_verbosity_level
from ._version import __format_version__, __version__
from .api import ContactMatrix, ResolutionGroup
from .balance import Balancer, balance_matrix
from .create import PairsBuilder, create_from_pairs
from .errors import (
    BadInputError,
    BalancingError,
    ConvergenceWarning,
    MatrixIndexError,
    ResolutionError,
    SelectorUninitError,
    StorageModeError,
)
from .io import MatrixReader, MatrixWriter
from .reduce import ZoomBuilder, get_zooming_order, zoom_matrix
from .trans import store_trans_max
from .util import binnify, read_tig_lengths

__all__ = [
    "BadInputError",
    "Balancer",
    "BalancingError",
    "ContactMatrix",
    "ConvergenceWarning",
    "MatrixIndexError",
    "MatrixReader",
    "MatrixWriter",
    "PairsBuilder",
    "ResolutionError",
    "ResolutionGroup",
    "SelectorUninitError",
    "StorageModeError",
    "ZoomBuilder",
    "__format_version__",
    "__version__",
    "balance_matrix",
    "binnify",
    "create_from_pairs",
    "get_verbosity_level",
    "get_zooming_order",
    "read_tig_lengths",
    "set_verbosity_level",
    "store_trans_max",
    "zoom_matrix",
]
