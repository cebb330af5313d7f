"""Business logic layer for drive app.

This package contains all business logic of the drive:
- Folder tree: creation, listing, moves, cascading trash and restore
- File metadata: listing, search, trash
- Direct uploads: single PUT and multipart sessions

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
