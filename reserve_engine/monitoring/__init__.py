"""Metrics for the reservation engine."""
