"""Course reviews module.

Provides:
- One review per user and course
- Sorted listings and rating statistics
"""

from .models import REVIEW_TABLES_CQL, Review


__all__ = ["REVIEW_TABLES_CQL", "Review"]
