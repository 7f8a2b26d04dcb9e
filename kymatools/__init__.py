"""CI helpers for image extraction, Azure DevOps pipelines, logging and cloud messages."""

__version__ = "0.1.0"