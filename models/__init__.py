"""
Data models module for the board subscription service.

This module contains SQLAlchemy ORM models for:
- Users and their Clones
- Boards and Clone <-> Board subscriptions
- Posts and Replies
and the read views assembled from them.
"""
