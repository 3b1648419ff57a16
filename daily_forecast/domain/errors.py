"""
Domain Errors
Typed failures raised by the forecast engines and their data sources
"""


class ForecastError(Exception):
    """Base class for every forecast engine failure"""


class InsufficientDataError(ForecastError):
    """
    Not enough history to produce a meaningful result.

    Raised instead of fabricating a regime or a projection.
    """


class UpstreamUnavailableError(ForecastError):
    """
    A data source (holidays, history, actuals, AOV) could not be read.

    Callers recover locally by falling back to neutral values.
    """


class InvalidArgumentError(ForecastError, ValueError):
    """Caller contract violation (out-of-range weekday, negative day count...)"""
