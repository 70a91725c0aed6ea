"""
Sysconverge Test Suite

Unit tests for each component run against an in-memory recording adapter;
the Linux adapter is tested with subprocess and the user database mocked.
"""
