"""QAptain: AI-assisted form testing against live web pages."""

__version__ = "1.0.0"
