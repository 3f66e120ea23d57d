"""Agri-Solve Pro: leaf scan diagnosis, scan history and nearby agri shops."""

__version__ = "0.1.0"
