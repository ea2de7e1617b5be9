"""Boop — adversarial review convergence engine."""

__version__ = "0.1.0-dev"
