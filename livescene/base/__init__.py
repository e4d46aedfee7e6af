"""Foundational pieces shared by every other package: config, context and events."""
