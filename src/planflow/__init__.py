"""planflow - plan lifecycle tracking for agent workflows."""

__version__ = "0.1.0"
