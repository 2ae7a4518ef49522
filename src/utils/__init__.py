"""Utility modules for logging, validation and message rendering."""
