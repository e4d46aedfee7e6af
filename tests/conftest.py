"""Pytest configuration for livescene."""
import os


def pytest_configure():
    # Verbose engine logging in test output; everything else keeps its defaults.
    os.environ.setdefault("LIVESCENE_DEBUG", "true")
