"""Dependency graph model, cache and resolver."""
