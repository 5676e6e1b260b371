"""CAVOK aviation weather backend."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("cavok")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
