"""depsnoop: dependency manifest scanner and vulnerability auditor."""

__version__ = "0.1.0"
