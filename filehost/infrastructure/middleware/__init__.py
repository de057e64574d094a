from .correlation import CorrelationIDMiddleware, get_correlation_id
from .logging import LoggingMiddleware

__all__ = ["CorrelationIDMiddleware", "LoggingMiddleware", "get_correlation_id"]
