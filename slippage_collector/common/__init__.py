from .async_utils import guarded_call
from .logging import log_event, sanitize_text, sanitize_value

__all__ = [
    "guarded_call",
    "log_event",
    "sanitize_text",
    "sanitize_value",
]
