"""Utility modules: configuration, constants, validation and time helpers."""
