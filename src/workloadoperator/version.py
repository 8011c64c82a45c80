"""Accessors for the package's version information."""

__all__ = ("__version__", "get_version")

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("workload-operator")
except PackageNotFoundError:
    __version__ = "unknown"


def get_version() -> str:
    """Return the installed version of workload-operator, or ``unknown``
    when running from an uninstalled source tree.
    """
    return __version__
