"""Application services for the dispatch core."""
