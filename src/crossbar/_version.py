"""Version information for crossbar.

``__version__`` is the installed distribution's version. ``describe()`` adds
the commit of a source checkout, which is what ``crossbar version`` shows.
"""

import subprocess
from functools import lru_cache
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

DISTRIBUTION = "crossbar-infra"
UNKNOWN_VERSION = "0.0.0-unknown"


def _installed_version() -> str:
    try:
        return version(DISTRIBUTION)
    except PackageNotFoundError:
        return UNKNOWN_VERSION


def _checkout_commit() -> str | None:
    """Short hash of HEAD when this package is imported from a git checkout."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            capture_output=True,
            text=True,
            timeout=5,
            cwd=Path(__file__).parent,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    commit = result.stdout.strip()
    return commit if result.returncode == 0 and commit else None


@lru_cache(maxsize=1)
def describe() -> str:
    """Version plus local commit, e.g. ``0.1.0+g1a2b3c4``."""
    commit = _checkout_commit()
    return f"{__version__}+g{commit}" if commit else __version__


__version__ = _installed_version()
