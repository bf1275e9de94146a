"""Shared libraries for defense-grader."""
