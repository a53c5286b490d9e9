import sys

import click
import simplejson as json

from ..api import ContactMatrix
from ..util import attrs_to_jsonable
from . import cli


@cli.command()
@click.argument("matrix_path", metavar="MATRIX_PATH")
@click.option(
    "--resolution",
    "-r",
    help="Display the info of this resolution instead of the file.",
    type=int,
)
@click.option(
    "--field",
    "-f",
    help="Print the value of a specific info field.",
    type=str,
)
def info(matrix_path, resolution, field):
    """
    Display a contact matrix's info and metadata.

    MATRIX_PATH : Path to a contact matrix file.

    """
    clr = ContactMatrix(matrix_path)
    if resolution is None:
        dct = dict(clr.info)
        dct["resolutions"] = clr.resolutions
        dct["ncontigs"] = clr.n_tigs
    else:
        if resolution not in clr:
            raise click.BadParameter(
                f"Resolution {resolution} not found; available: {clr.resolutions}",
                param_hint="--resolution",
            )
        grp = clr.res_group(resolution)
        dct = grp.info()
        dct["balanced"] = grp.weights() is not None

    if field is not None:
        try:
            result = dct[field]
        except KeyError:
            click.echo(f"Data field {field} not found.", err=True)
            sys.exit(1)
        click.echo(result)
    else:
        dct.pop("metadata", None)
        click.echo(json.dumps(attrs_to_jsonable(dct), indent=4))
