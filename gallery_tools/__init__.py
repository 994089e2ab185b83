"""Tools for keeping the gallery site's JSON indexes in sync with its image folders."""

__version__ = "0.1.0"
