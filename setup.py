#!/usr/bin/env python3
"""Setup script for ovpn-relay."""

from setuptools import setup, find_packages
from pathlib import Path

# Get the directory containing this file
here = Path(__file__).parent

# Read version
version_file = here / "VERSION"
with open(version_file, "r", encoding="utf-8") as f:
    version = f.read().strip()

# Read requirements
requirements_file = here / "requirements.txt"
with open(requirements_file, "r", encoding="utf-8") as f:
    requirements = [line.strip() for line in f if line.strip()
                    and not line.startswith("#")]

readme_file = here / "README.md"
try:
    with open(readme_file, "r", encoding="utf-8") as f:
        long_description = f.read()
except FileNotFoundError:
    long_description = "OpenVPN server exposed through an frp relay, provisioned in one run"

setup(
    name="ovpn-relay",
    version=version,
    author="Regix",
    description="Provision an OpenVPN server and expose it through an frp relay",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "ovpn-relay=ovpn_relay.cli:main",
        ],
    },
    include_package_data=True,
    package_data={
        "ovpn_relay": ["templates/*.j2"],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
