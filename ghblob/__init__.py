"""Manage GitHub-owned migration archive blobs: upload, query, list and delete."""

__version__ = "0.1.0"