"""
Test suite for the Care Portal.

Exercises the API end to end against a throwaway SQLite database.
"""
import os

# Set environment for testing
os.environ["TESTING"] = "1"
