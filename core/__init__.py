"""Shared runtime helpers."""
