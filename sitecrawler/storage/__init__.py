"""
Storage layer for the crawler.
"""

from .visited_store import VisitedStore

__all__ = ['VisitedStore']
