import click

from ..api import ContactMatrix
from ..create import DEFAULT_CHUNKSIZE
from ..reduce import zoom_matrix
from . import cli, get_logger
from ._util import (
    DelimitedTuple,
    balancer_kwargs,
    balancer_options,
    flatten_resolutions,
    report_failures,
)


@cli.command()
@click.argument("matrix_path", metavar="MATRIX_PATH")
@click.option(
    "--resolutions",
    "-r",
    help="Comma-separated list of new resolutions. Each must be a multiple "
    "of a resolution already in the file or of another requested one.",
    type=DelimitedTuple(type=int),
    multiple=True,
    required=True,
)
@click.option(
    "--chunksize",
    "-c",
    help="Number of pixels streamed at once.",
    type=int,
    default=DEFAULT_CHUNKSIZE,
    show_default=True,
)
@balancer_options("none")
def zoom(
    matrix_path,
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
    Add coarser resolutions by aggregating existing ones.

    MATRIX_PATH : Path to a contact matrix file.

    """
    logger = get_logger(__name__)
    clr = ContactMatrix(matrix_path, chunksize=chunksize)
    resolutions = flatten_resolutions(resolutions)
    logger.info(f"Zooming {matrix_path} to {resolutions}")
    try:
        failed = zoom_matrix(
            clr,
            resolutions,
            strategy,
            **balancer_kwargs(ignore_diags, min_nnz, mad_max, max_iters, tol),
        )
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--resolutions") from None
    report_failures(failed)
