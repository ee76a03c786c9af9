"""Configuration, logging, errors and shared helpers."""
