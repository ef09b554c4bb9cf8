"""Command line entry points for featurerun."""
