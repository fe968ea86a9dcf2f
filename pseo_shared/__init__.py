"""
Shared persistence layer for the content pipeline.
"""
from .models import Base, Article, Page, PageType

__all__ = [
    "Base",
    "Article",
    "Page",
    "PageType",
]
