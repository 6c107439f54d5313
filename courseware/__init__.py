"""Courseware core: content normalisation, evaluation, progress and access tokens."""

__version__ = "0.1.0"
