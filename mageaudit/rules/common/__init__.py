"""Helpers shared by several rule processors."""
