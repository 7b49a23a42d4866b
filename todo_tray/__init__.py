"""Aggregate Todoist, Linear, GitHub and calendar items into one snapshot."""

__version__ = "0.1.0"
