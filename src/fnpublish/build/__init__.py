"""Packaging and clean-room validation."""
