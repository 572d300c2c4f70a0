"""Shared helpers: exceptions, logging, validation and time utilities."""
