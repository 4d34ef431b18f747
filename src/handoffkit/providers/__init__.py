"""Execution-primitive providers."""
