"""Reporting module - JSON output of the command line tool."""

from .json_reporter import JsonReporter

__all__ = ["JsonReporter"]
