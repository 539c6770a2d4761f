"""
elfdeps Output
===============

Line-oriented dependency printing and JSON reports.
"""

from elfdeps.output.console import DependencyPrinter
from elfdeps.output.report import DependencyReportGenerator

__all__ = ["DependencyPrinter", "DependencyReportGenerator"]
