import sys

import click

from ..api import ContactMatrix
from ..balance import balance_matrix
from ..create import DEFAULT_CHUNKSIZE
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
    help="Comma-separated list of resolutions to balance. Can be repeated. "
    "[default: all]",
    type=DelimitedTuple(type=int),
    multiple=True,
)
@click.option(
    "--chunksize",
    "-c",
    help="Number of pixels streamed at once.",
    type=int,
    default=DEFAULT_CHUNKSIZE,
    show_default=True,
)
@click.option(
    "--check",
    help="Check whether the resolutions are balanced instead of balancing.",
    is_flag=True,
    default=False,
)
@balancer_options("ICGW")
def balance(
    matrix_path,
    resolutions,
    chunksize,
    check,
    strategy,
    ignore_diags,
    min_nnz,
    mad_max,
    max_iters,
    tol,
):
    """
    Compute and store balancing weights.

    Bins filtered out by balancing get NaN weights. Existing weights are
    replaced.

    MATRIX_PATH : Path to a contact matrix file.

    """
    logger = get_logger(__name__)
    clr = ContactMatrix(matrix_path, chunksize=chunksize)
    resolutions = flatten_resolutions(resolutions) or clr.resolutions
    missing = [r for r in resolutions if r not in clr]
    if missing:
        raise click.BadParameter(
            f"Resolutions not found in {matrix_path}: {missing}",
            param_hint="--resolutions",
        )

    if check:
        unbalanced = [
            r for r in resolutions if clr.res_group(r).weights() is None
        ]
        for r in resolutions:
            state = "not balanced" if r in unbalanced else "balanced"
            click.echo(f"{matrix_path}::resolutions/{r} is {state}.")
        sys.exit(1 if unbalanced else 0)

    if strategy is None:
        logger.info("No balancing strategy given, nothing to do")
        return

    failed = balance_matrix(
        clr,
        resolutions,
        strategy,
        **balancer_kwargs(ignore_diags, min_nnz, mad_max, max_iters, tol),
    )
    report_failures(failed)
