# ratework/reviews/moderation/__init__.py

"""
Trust gates for review submissions and vote streams.
"""

from .similarity import TextSimilarityDetector, SimilarityConfig
from .manipulation import VoteManipulationDetector, ManipulationConfig
from .content import (
    ContentModerator,
    ContentConfig,
    ReviewValidator,
    ReviewValidationError
)

__all__ = [
    'TextSimilarityDetector',
    'SimilarityConfig',
    'VoteManipulationDetector',
    'ManipulationConfig',
    'ContentModerator',
    'ContentConfig',
    'ReviewValidator',
    'ReviewValidationError'
]
