"""Installed version of fefcalc."""

from importlib.metadata import PackageNotFoundError, version


def get_version() -> str:
    """Version recorded in the installed distribution's metadata."""
    try:
        return version("fefcalc")
    except PackageNotFoundError:
        # Running from a source tree that was never installed
        return "0.0.0+unknown"
