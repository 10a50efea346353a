"""Core modules: configuration, logging, errors and the mirror service."""
