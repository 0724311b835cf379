"""
Version information for dropkit.
"""
import importlib.metadata
import pathlib

import tomli

PYPROJECT = pathlib.Path(__file__).parent.parent / "pyproject.toml"


def read_version(pyproject: pathlib.Path = PYPROJECT) -> str:
    """Installed distribution version, else the one declared in a source checkout's pyproject.toml"""
    try:
        return importlib.metadata.version("dropkit")
    except importlib.metadata.PackageNotFoundError:
        pass
    try:
        with pyproject.open("rb") as f:
            return tomli.load(f)["project"]["version"]
    except (FileNotFoundError, KeyError, tomli.TOMLDecodeError):
        return "0.0.0"


__version__ = read_version()
