"""Ticket Desk: support ticket tracking with an audit history."""

__version__ = "0.1.0"
