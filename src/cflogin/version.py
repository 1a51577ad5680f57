"""Version of the installed cflogin distribution."""

from __future__ import annotations

from importlib import metadata

DISTRIBUTION_NAME = "cflogin"
FALLBACK_VERSION = "0.1.0"


def package_version() -> str:
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        # source checkout without an installed distribution
        return FALLBACK_VERSION


__version__ = package_version()
