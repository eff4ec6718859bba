"""Brio Test Suite

This package contains all tests for the Brio planning engine.

Test organization:
- unit/planning/: Engine, stores, context, achievements, config, models
- unit/test_cli.py: End-to-end runs of the `brio` command against a temp database

Running tests:
    # All tests
    pytest

    # Specific module
    pytest tests/unit/planning/test_engine.py
"""
