"""Diff analysis for review comment positions."""

from .diff_parser import DiffParser, DiffHunk, HunkLine, ParsedDiff

__all__ = ["DiffParser", "DiffHunk", "HunkLine", "ParsedDiff"]
