"""Reasonet: automated pull request review for GitHub App installations."""

__version__ = "0.1.0"
