"""Infrastructure adapters for the dispatch core."""
