"""Imaging node selection around BeltLine access points."""

__version__ = "0.1.0"
