"""Reporters — terminal (rich), JSON and YAML renderings of engine records."""
