"""Rendering sinks."""
