from .._logging import get_logger
from ..io import MatrixWriter
from ..util import read_tig_lengths
from . import DEFAULT_CHUNKSIZE
from ._ingest import PairsBuilder, as_tig_lengths

logger = get_logger("hicmatrix.create")


def create_from_pairs(
    matrix_path,
    tig_lengths,
    pairs,
    resolutions,
    strategy="ICGW",
    chunksize=DEFAULT_CHUNKSIZE,
    h5opts=None,
    **balance_kws
):
    """
    Create a multi-resolution contact matrix from a pairs file.

    The smallest resolution is binned from the pairs; every other resolution
    is aggregated from the largest smaller one that divides it. Each
    resolution is then balanced.

    Parameters
    ----------
    matrix_path : str
        Output file path; overwritten if it exists.
    tig_lengths : str, file-like, pandas.Series or sequence of (name, length)
        Contig lengths. Contigs are cataloged by increasing length.
    pairs : str or file-like
        Pairs records, see :py:class:`PairsBuilder`.
    resolutions : sequence of int
        Resolutions to create.
    strategy : {"ICGW", "LEN", None}, optional
        Balancing strategy, ``None`` to skip balancing.
    chunksize : int, optional
        Number of pixels streamed at once while zooming and balancing.
    h5opts : dict, optional
        HDF5 dataset filter options.
    balance_kws : optional
        Balancer options.

    Returns
    -------
    list
        Resolutions that could not be balanced.

    """
    from ..api import ContactMatrix
    from ..balance import balance_matrix
    from ..reduce import get_zooming_order, zoom_matrix

    if not len(resolutions):
        raise ValueError("At least one resolution is required.")
    if isinstance(tig_lengths, str) or hasattr(tig_lengths, "read"):
        tig_lengths = read_tig_lengths(tig_lengths)
    else:
        tig_lengths = as_tig_lengths(tig_lengths).sort_values(kind="mergesort")

    # validate the zooming order before any work is done
    base = min(resolutions)
    get_zooming_order(resolutions, [base])

    writer = MatrixWriter(matrix_path, "w", h5opts)
    writer.write_tigs(tig_lengths)
    builder = PairsBuilder(tig_lengths, base, pairs)
    writer.write_res_group(builder)

    clr = ContactMatrix(matrix_path, chunksize=chunksize)
    zoom_matrix(clr, resolutions)

    if strategy is None:
        return []
    return balance_matrix(clr, strategy=strategy, **balance_kws)
