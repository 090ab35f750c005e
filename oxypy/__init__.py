from .session import OxySession
from .errors import OxyError, OxySyntaxError, OxyRuntimeError

__all__ = ["OxySession", "OxyError", "OxySyntaxError", "OxyRuntimeError"]
