"""
Error taxonomy for resampling, fitting and threshold evaluation.

Every error raised here is recoverable at the experiment level: a sweep
records the failing configuration and moves on to the next one.
"""


class ImbalanceCutoffError(Exception):
    """Base class for all recoverable pipeline errors."""


class InsufficientDataError(ImbalanceCutoffError):
    """A class has too few rows to split, resample or cross-validate."""


class InsufficientMinorityError(InsufficientDataError):
    """Minority class is too small for a neighbour-based resampler."""


class SeparationError(ImbalanceCutoffError):
    """The classifier optimizer failed to converge."""


class SchemaMismatchError(ImbalanceCutoffError):
    """Prediction data does not carry the feature columns used at fit time."""


class DegenerateEvaluationError(ImbalanceCutoffError):
    """ROC or cost evaluation requested on labels containing a single class."""
