"""
Book Tracker: a small REST API for a personal book collection.

This package provides:
- Create, list, fetch, update and delete of book records
- Search, status/tag filters and pagination for listings
- MongoDB persistence through motor
"""
