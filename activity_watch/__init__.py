"""Watch remote platform activities until they finish."""

__version__ = "0.1.0"
