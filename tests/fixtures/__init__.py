"""Helpers that write throwaway projects for the test suite."""
