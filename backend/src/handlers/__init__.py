"""Command-line entry points for the eco-score pipeline."""
