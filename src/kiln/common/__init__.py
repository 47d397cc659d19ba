from kiln.common._fs import mtime_ns, safe_rmpath
from kiln.common._generic import NotSet, not_none, unique
from kiln.common._option_sets import LoggingOptions

__all__ = [
    "LoggingOptions",
    "NotSet",
    "mtime_ns",
    "not_none",
    "safe_rmpath",
    "unique",
]
