"""Recommendation engine components."""
