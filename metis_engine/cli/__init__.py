"""Command-line interface for the METIS effect engine."""
