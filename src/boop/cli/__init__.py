"""Boop command-line interface."""
