"""Command-line interface for the Kheticulture marketplace."""
