"""Property-based tests using Hypothesis.

These tests map randomly shaped forests into a fresh database and check that
the stored bounds encode exactly the input hierarchy.

To run property tests:
    pytest tests/property/ -v --hypothesis-show-statistics
"""
