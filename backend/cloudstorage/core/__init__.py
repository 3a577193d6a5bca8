"""Core application plumbing: configuration, extensions, logging, errors and wiring."""
