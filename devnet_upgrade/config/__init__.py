"""Configuration for the upgrade state subsystem."""
