"""Integration tests for full sync cycles against the in-memory remote."""
