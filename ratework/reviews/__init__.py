# ratework/reviews/__init__.py

from .engine import ReviewCredibilityEngine, ReviewDataSource

__all__ = ['ReviewCredibilityEngine', 'ReviewDataSource']
