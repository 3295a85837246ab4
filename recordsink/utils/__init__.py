"""Configuration and retry helpers."""
