"""Ambient plumbing: logging and settings."""
