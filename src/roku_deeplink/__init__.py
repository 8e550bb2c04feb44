"""Deep-link certification tester for Roku applications."""

__version__ = "1.0.0"
