class MarketDataError(Exception):
    """Base class for failures reaching or interpreting the market-data provider."""

    status_code = 500


class ConfigError(MarketDataError):
    """Upstream endpoint or credentials are not configured."""


class UpstreamError(MarketDataError):
    """Provider answered with a non-success status or a payload we cannot read."""


class NotFoundError(MarketDataError):
    status_code = 404


class ValidationError(MarketDataError):
    """Caller supplied an invalid parameter; nothing was sent upstream."""

    status_code = 400
