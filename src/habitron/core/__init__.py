"""Shared plumbing: configuration, events, exceptions and logging."""
