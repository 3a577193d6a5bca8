"""Shared service-layer primitives: base class, errors and ports."""
