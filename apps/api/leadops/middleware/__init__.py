from leadops.middleware.correlation_id import CorrelationIdMiddleware
from leadops.middleware.request_logging import RequestLoggingMiddleware

__all__ = ["CorrelationIdMiddleware", "RequestLoggingMiddleware"]
