import click

from ..api import ContactMatrix
from ..create import DEFAULT_CHUNKSIZE
from ..trans import store_trans_max
from . import cli
from ._util import DelimitedTuple, flatten_resolutions


@cli.command(name="trans-max")
@click.argument("matrix_path", metavar="MATRIX_PATH")
@click.option(
    "--resolutions",
    "-r",
    help="Comma-separated list of resolutions. [default: all]",
    type=DelimitedTuple(type=int),
    multiple=True,
)
@click.option(
    "--length-cutoff",
    "-l",
    help="Only consider contacts between contigs at least this long (bp).",
    type=int,
    default=0,
    show_default=True,
)
@click.option(
    "--chunksize",
    "-c",
    help="Number of pixels streamed at once.",
    type=int,
    default=DEFAULT_CHUNKSIZE,
    show_default=True,
)
def trans_max(matrix_path, resolutions, length_cutoff, chunksize):
    """
    Store the best balanced trans-contig value of every bin.

    The resolutions must be balanced.

    MATRIX_PATH : Path to a contact matrix file.

    """
    clr = ContactMatrix(matrix_path, chunksize=chunksize)
    resolutions = flatten_resolutions(resolutions) or clr.resolutions
    for r in resolutions:
        if r not in clr:
            raise click.BadParameter(
                f"Resolution {r} not found in {matrix_path}.",
                param_hint="--resolutions",
            )
        if clr.res_group(r).weights() is None:
            raise click.ClickException(f"Resolution {r} is not balanced.")
    store_trans_max(clr, resolutions, length_cutoff)
