"""Wasteland wanted board: fork/claim/review/merge over a versioned database."""

__version__ = "0.4.0"
