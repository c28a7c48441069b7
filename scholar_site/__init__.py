"""Static site builder for a personal academic website."""

__version__ = '0.1.0'
