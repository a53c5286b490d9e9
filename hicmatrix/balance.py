from functools import partial
import warnings

import numpy as np

from ._logging import get_logger
from .create import DEFAULT_CHUNKSIZE
from .errors import BalancingError, ConvergenceWarning
from .util import mad

__all__ = ["Balancer", "compute_weights", "balance_matrix"]

logger = get_logger(__name__)

STRATEGIES = ("ICGW", "LEN")


def _init(chunk):
    return chunk["count"].astype(float)


def _binarize(chunk, data):
    data[data != 0] = 1
    return data


def _zero_diags(n_diags, chunk, data):
    if n_diags > 0:
        mask = np.abs(chunk["bin1_id"] - chunk["bin2_id"]) < n_diags
        data[mask] = 0
    return data


def _timesouterproduct(vec, chunk, data):
    data = vec[chunk["bin1_id"]] * vec[chunk["bin2_id"]] * data
    return data


def _marginalize(n_bins, chunk, data):
    marg = (
        np.bincount(chunk["bin1_id"], weights=data, minlength=n_bins)
        + np.bincount(chunk["bin2_id"], weights=data, minlength=n_bins)
    )
    return marg


def _median_or_none(x):
    return np.median(x) if len(x) else None


class Balancer:
    """
    Genome-wide iterative correction of a symmetric contact matrix.

    Parameters
    ----------
    ignore_diags : int, optional
        Pixels less than this many diagonals away from the main diagonal are
        ignored. 1 ignores the main diagonal only; 0 keeps everything.
    min_nnz : int, optional
        Bins with fewer nonzero pixels than this, after ignoring diagonals,
        are filtered out.
    mad_max : float, optional
        Filter out bins whose log marginal sum, normalized by the median of
        their contig, lies more than this many median absolute deviations
        below the genome-wide median. Non-positive values disable the filter.
    n_iters : int, optional
        Maximum number of correction iterations.
    var_bound : float, optional
        Stop once the variance of the nonzero marginals is below this value.
    chunksize : int, optional
        Number of pixels streamed at once.

    """

    def __init__(
        self,
        ignore_diags=3,
        min_nnz=5,
        mad_max=5.0,
        n_iters=400,
        var_bound=1e-5,
        chunksize=DEFAULT_CHUNKSIZE,
    ):
        if ignore_diags < 0:
            raise ValueError("ignore_diags must be non-negative")
        if n_iters < 1:
            raise ValueError("n_iters must be at least 1")
        self.ignore_diags = ignore_diags
        self.min_nnz = min_nnz
        self.mad_max = mad_max
        self.n_iters = n_iters
        self.var_bound = var_bound
        self.chunksize = chunksize

    def _marginals(self, res_group, *filters):
        n_bins = res_group.n_bins
        marg = np.zeros(n_bins)
        for chunk in res_group.pixel_chunks(self.chunksize):
            data = _init(chunk)
            for f in filters:
                data = f(chunk, data)
            marg += _marginalize(n_bins, chunk, data)
        return marg

    def _filter_few_nnzs(self, res_group, bias):
        nnz = self._marginals(
            res_group, partial(_zero_diags, self.ignore_diags), _binarize
        )
        bias[nnz < self.min_nnz] = 0
        logger.info(f"{int((nnz < self.min_nnz).sum())} bins below min_nnz")
        return bias

    def _filter_by_mad(self, res_group, bias):
        marg = self._marginals(res_group, partial(_zero_diags, self.ignore_diags))
        marg[bias == 0] = 0

        chrom_offsets = res_group.chrom_offsets()
        for lo, hi in zip(chrom_offsets[:-1], chrom_offsets[1:]):
            c_marg = marg[lo:hi]
            median = _median_or_none(c_marg[c_marg > 0])
            if median is None:
                marg[lo:hi] = 0
            else:
                marg[lo:hi] = c_marg / median

        logNzMarg = np.log(marg[marg > 0])
        if not len(logNzMarg):
            logger.warning(
                "MAD filter not performed: no bin has a nonzero marginal"
            )
            return bias

        med_logNzMarg = np.median(logNzMarg)
        dev_logNzMarg = mad(logNzMarg)
        cutoff = np.exp(med_logNzMarg - self.mad_max * dev_logNzMarg)
        bias[marg < cutoff] = 0
        logger.info(f"{int((marg < cutoff).sum())} bins below the MAD cutoff")
        return bias

    def _weighted_marginals(self, res_group, bias):
        return self._marginals(
            res_group,
            partial(_zero_diags, self.ignore_diags),
            partial(_timesouterproduct, bias),
        )

    def balance(self, res_group):
        """
        Compute balancing weights of a resolution group.

        Returns
        -------
        bias : 1D array
            Weights, NaN for filtered-out bins.
        stats : dict
            Parameters and convergence summary.

        Raises
        ------
        BalancingError
            No bin has a nonzero weighted marginal.

        """
        bias = np.ones(res_group.n_bins, dtype=float)
        bias = self._filter_few_nnzs(res_group, bias)
        if self.mad_max > 0:
            bias = self._filter_by_mad(res_group, bias)

        var = np.nan
        converged = False
        for i in range(self.n_iters):
            marg = self._weighted_marginals(res_group, bias)
            nzmarg = marg[marg != 0]
            if not len(nzmarg):
                raise BalancingError(
                    f"Cannot balance resolution {res_group.resolution}: "
                    "all marginals vanished."
                )

            marg = marg / nzmarg.mean()
            marg[marg == 0] = 1
            bias /= marg

            var = nzmarg.var()
            logger.info(f"variance is {var} on iteration {i}")
            if var < self.var_bound:
                converged = True
                break
        else:
            warnings.warn(
                "Iteration limit reached without convergence.",
                ConvergenceWarning,
            )

        marg = self._weighted_marginals(res_group, bias)
        nzmarg = marg[marg != 0]
        if not len(nzmarg):
            raise BalancingError(
                f"Cannot rescale weights of resolution {res_group.resolution}."
            )
        scale = nzmarg.mean()
        bias[bias == 0] = np.nan
        bias /= np.sqrt(scale)

        stats = {
            "strategy": "ICGW",
            "ignore_diags": self.ignore_diags,
            "min_nnz": self.min_nnz,
            "mad_max": self.mad_max,
            "var_bound": self.var_bound,
            "n_iters": i + 1,
            "converged": converged,
            "var": float(var),
            "scale": float(scale),
        }
        return bias, stats


def compute_weights(res_group, strategy="ICGW", **kwargs):
    """
    Weights of a resolution group by the given strategy.

    Parameters
    ----------
    res_group : ResolutionGroup
        Resolution to balance.
    strategy : {"ICGW", "LEN"}
        ``"ICGW"`` runs genome-wide iterative correction with a
        :py:class:`Balancer` configured by ``kwargs``. ``"LEN"`` weighs every
        bin by the inverse of the resolution.

    Returns
    -------
    weights, stats

    """
    if strategy == "ICGW":
        return Balancer(**kwargs).balance(res_group)
    elif strategy == "LEN":
        weights = np.full(res_group.n_bins, 1.0 / res_group.resolution)
        return weights, {"strategy": "LEN"}
    raise ValueError(
        f"Unknown balancing strategy '{strategy}'; choose from {STRATEGIES}."
    )


def balance_matrix(clr, resolutions=None, strategy="ICGW", **kwargs):
    """
    Balance several resolutions of a contact matrix, storing the weights.

    A resolution that cannot be balanced is reported and left without
    weights; the others are still processed.

    Parameters
    ----------
    clr : ContactMatrix
        Matrix opened on a writeable store.
    resolutions : sequence of int, optional
        Defaults to every resolution of the matrix.
    strategy : {"ICGW", "LEN"}, optional
    kwargs : optional
        Balancer options.

    Returns
    -------
    list
        Resolutions that could not be balanced.

    """
    if resolutions is None:
        resolutions = clr.resolutions
    # fail early on unknown resolutions
    groups = [clr.res_group(res) for res in resolutions]

    failed = []
    for grp in groups:
        logger.info(f"Balancing resolution {grp.resolution} with {strategy}")
        try:
            clr.balance(grp.resolution, strategy, **kwargs)
        except BalancingError as e:
            logger.error(str(e))
            failed.append(grp.resolution)
    return failed
