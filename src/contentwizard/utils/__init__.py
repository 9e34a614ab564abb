"""Utility helpers for the content wizard."""
