"""Error types raised by the predictor selection toolkit."""


class InvalidArgument(ValueError):
    """Raised when a call receives arguments it cannot work with (e.g. k < 2)."""


class MalformedMatrix(ValueError):
    """Raised when a correlation matrix is not square, symmetric and within [-1, 1]."""
