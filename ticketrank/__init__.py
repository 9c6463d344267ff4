"""Ticket ranking service with similarity-aware ordering."""

__version__ = "0.1.0"
