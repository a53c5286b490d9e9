import click

from ..create import DEFAULT_CHUNKSIZE, create_from_pairs
from ..reduce import get_zooming_order
from . import cli, get_logger
from ._util import (
    DelimitedTuple,
    balancer_kwargs,
    balancer_options,
    flatten_resolutions,
    report_failures,
)


@cli.command()
@click.argument("pairs_path", metavar="PAIRS_PATH")
@click.argument("tig_lengths_path", metavar="TIG_LENGTHS")
@click.argument("out", metavar="OUT_PATH")
@click.option(
    "--resolutions",
    "-r",
    help="Comma-separated list of resolutions in bp. Can be repeated. The "
    "smallest one is binned from the pairs, the others are aggregated.",
    type=DelimitedTuple(type=int),
    multiple=True,
    required=True,
)
@click.option(
    "--chunksize",
    "-c",
    help="Number of pixels streamed at once when zooming and balancing.",
    type=int,
    default=DEFAULT_CHUNKSIZE,
    show_default=True,
)
@balancer_options("ICGW")
def build(
    pairs_path,
    tig_lengths_path,
    out,
    resolutions,
    chunksize,
    strategy,
    ignore_diags,
    min_nnz,
    mad_max,
    max_iters,
    tol,
):
    """
    Build a multi-resolution contact matrix from Hi-C pairs.

    PAIRS_PATH : Tab-delimited pairs file: read name, contig1, pos1, contig2,
    pos2, strand1, strand2. Pass - for stdin.

    TIG_LENGTHS : Tab-delimited file of contig names and lengths.

    OUT_PATH : Output HDF5 file.

    """
    logger = get_logger(__name__)
    resolutions = flatten_resolutions(resolutions)
    try:
        get_zooming_order(resolutions)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--resolutions") from None

    if pairs_path == "-":
        pairs = click.get_text_stream("stdin")
    else:
        pairs = pairs_path

    logger.info(f"Building {out} at resolutions {resolutions}")
    failed = create_from_pairs(
        out,
        tig_lengths_path,
        pairs,
        resolutions,
        strategy=strategy,
        chunksize=chunksize,
        **balancer_kwargs(ignore_diags, min_nnz, mad_max, max_iters, tol),
    )
    report_failures(failed)
