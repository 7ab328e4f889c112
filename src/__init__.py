"""Compile an OpenNext build manifest into a cloud resource topology."""

from opennext_topology.version import __version__

__all__ = ["__version__"]
