"""
Exceptions raised by hicmatrix.

"""


class BadInputError(ValueError):
    """Input tables or records could not be interpreted."""
    pass


class MatrixIndexError(IndexError):
    """A query window lies outside of the matrix or is empty."""
    pass


class SelectorUninitError(RuntimeError):
    """
    A range query was issued on a resolution group whose query engine has
    not been initialized. Call ``init_selector()`` first.

    """
    pass


class ResolutionError(LookupError):
    """The requested resolution is not present in the matrix."""
    pass


class BalancingError(RuntimeError):
    """Weights could not be computed, e.g. all marginals vanished."""
    pass


class StorageModeError(ValueError):
    """The matrix store was opened in a mode that forbids the operation."""
    pass


class ConvergenceWarning(UserWarning):
    pass
