import click

from ..balance import STRATEGIES


class DelimitedTuple(click.types.ParamType):
    def __init__(self, sep=",", type=str):
        self.sep = sep
        self.type = click.types.convert_type(type)

    @property
    def name(self):
        return f"separated[{self.sep}]"

    def convert(self, value, param, ctx):
        # needs to pass through value = None unchanged
        # needs to be idempotent
        # needs to be able to deal with param and context being None
        if value is None:
            return value
        elif isinstance(value, str):
            parts = [x for x in value.split(self.sep) if x]
        else:
            parts = value
        return tuple(self.type(x, param, ctx) for x in parts)


def flatten_resolutions(values):
    """Merge repeated ``-r`` options into a sorted list of unique ints."""
    result = set()
    for value in values or ():
        result.update(value)
    for res in result:
        if res <= 0:
            raise click.BadParameter(f"Resolutions must be positive, got {res}.")
    return sorted(result)


def parse_strategy(ctx, param, value):
    if value is None or value.lower() == "none":
        return None
    value = value.upper()
    if value not in STRATEGIES:
        raise click.BadParameter(
            f"Expected one of {', '.join(STRATEGIES)} or 'none', got '{value}'."
        )
    return value


def balancer_options(default_strategy="ICGW"):
    """Attach the balancing options shared by several commands."""
    options = [
        click.option(
            "--strategy",
            help="Balancing strategy: ICGW (genome-wide iterative correction), "
            "LEN (inverse bin size) or none.",
            default=default_strategy,
            show_default=True,
            callback=parse_strategy,
        ),
        click.option(
            "--ignore-diags",
            help="Number of diagonals of the contact matrix to ignore, "
            "including the main diagonal.",
            type=int,
            default=3,
            show_default=True,
        ),
        click.option(
            "--min-nnz",
            help="Ignore bins from the contact matrix using the 'min_nnz' "
            "filter.",
            type=int,
            default=5,
            show_default=True,
        ),
        click.option(
            "--mad-max",
            help="Ignore bins from the contact matrix using the MAD-max "
            "filter: bins whose log marginal sum is less than ``mad-max`` "
            "median absolute deviations below the median log marginal sum.",
            type=float,
            default=5.0,
            show_default=True,
        ),
        click.option(
            "--max-iters",
            help="Maximum number of iterations to perform if convergence is "
            "not achieved.",
            type=int,
            default=400,
            show_default=True,
        ),
        click.option(
            "--tol",
            help="Threshold value of variance of the marginals for the "
            "algorithm to converge.",
            type=float,
            default=1e-5,
            show_default=True,
        ),
    ]

    def decorator(func):
        for option in reversed(options):
            func = option(func)
        return func
    return decorator


def balancer_kwargs(ignore_diags, min_nnz, mad_max, max_iters, tol):
    return {
        "ignore_diags": ignore_diags,
        "min_nnz": min_nnz,
        "mad_max": mad_max,
        "n_iters": max_iters,
        "var_bound": tol,
    }


def report_failures(failed):
    if failed:
        raise click.ClickException(
            "Could not balance resolutions: "
            + ", ".join(str(r) for r in failed)
        )
