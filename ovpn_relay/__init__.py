"""ovpn-relay - OpenVPN behind an frp relay, provisioned in one run."""

from pathlib import Path

# Try to read version from VERSION file
try:
    version_file = Path(__file__).parent.parent / "VERSION"
    if version_file.exists():
        __version__ = version_file.read_text().strip()
    else:
        __version__ = "1.2.1"
except OSError:
    __version__ = "1.2.1"

__author__ = "Regix"

__all__ = ["__version__", "__author__"]
