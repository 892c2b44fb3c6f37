"""embedscan: find embedded-resource references in Go source."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("embed-scan")
except PackageNotFoundError:
    __version__ = "dev"
