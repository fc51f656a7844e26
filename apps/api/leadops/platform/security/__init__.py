from leadops.platform.security.context import Caller
from leadops.platform.security.errors import HTTP_STATUS_BY_ERROR_KIND, ErrorKind

__all__ = ["Caller", "ErrorKind", "HTTP_STATUS_BY_ERROR_KIND"]
