"""
Detecting the package's own version.

The version is determined only once at startup when the code is loaded.
It is used to self-identify in the User-Agent header of the API requests.
"""
from typing import Optional

version: Optional[str] = None

try:
    import importlib.metadata
except ImportError:
    pass
else:
    try:
        name, *_ = __name__.split('.')  # usually "appplatform", unless renamed/forked.
        version = importlib.metadata.version(name)
    except Exception:
        pass  # not installed, or installed from a source tree.
