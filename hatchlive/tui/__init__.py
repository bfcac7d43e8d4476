"""Textual log viewer for the hatch daemon."""
