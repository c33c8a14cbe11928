"""Adaptive puzzle recommendation engine."""
