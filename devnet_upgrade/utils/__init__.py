"""Utility helpers for the upgrade state subsystem."""
