"""
taxtoken.version — package version and the runtime stack behind it.

`__version__` is the source-tree version. The installed distribution may
differ in an editable or stale install, so `version_metadata()` reports both
along with the libraries the snapshot codec and CLI run on.
"""

from __future__ import annotations

import platform
from functools import lru_cache
from importlib import metadata
from typing import Dict, Optional

__version__ = "0.3.0"

DIST_NAME = "taxtoken"
RUNTIME_DEPS = ("cbor2", "typer")


def installed_version(dist: str = DIST_NAME) -> Optional[str]:
    """Version of an installed distribution, or None when it is not installed."""
    try:
        return metadata.version(dist)
    except metadata.PackageNotFoundError:
        return None


@lru_cache(maxsize=1)
def version_metadata() -> Dict[str, object]:
    """Structured version info for `taxtoken version`."""
    installed = installed_version()
    return {
        "version": __version__,
        "installed": installed,
        "stale_install": installed is not None and installed != __version__,
        "python": platform.python_version(),
        "deps": {name: installed_version(name) for name in RUNTIME_DEPS},
    }


__all__ = ["__version__", "installed_version", "version_metadata"]
