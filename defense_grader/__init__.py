"""Thesis defense scoring: rubric averages, weighted scores and grades."""

__version__ = "0.1.0"
