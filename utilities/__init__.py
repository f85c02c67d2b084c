"""
Shared utilities for the Book Tracker API.
"""
