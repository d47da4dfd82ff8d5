"""
swapcheck — verifies that a MongoDB-compatible backend's documents, indexes
and collections survive an in-place old -> new -> old backend swap.
"""

__version__ = "0.1.0"
