"""Run a local command with AWS credentials set in its environment."""

__all__ = ["__version__"]

__version__ = "0.1.0"
