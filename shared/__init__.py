"""
Shared Infrastructure
=====================

Configuration, logging, and console utilities used by the elfdeps
package.
"""

from shared.config import ToolkitConfig

__all__ = ["ToolkitConfig"]
