"""
Data infrastructure: storing interview results with the hiring platform.
"""

from .results import HttpResultsClient

__all__ = ['HttpResultsClient']
