"""Shared helpers for dockerbench."""
