"""
Static knowledge used by the recommendation pipeline.

Geography (regions, neighbors, country names) and causes (categories,
adjacency, keyword tables), plus the inference helpers built on them.
"""

__all__ = ["causes", "geography", "inference"]
