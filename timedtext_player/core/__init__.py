"""Compiled timeline model, descriptor input, compiler and index."""
