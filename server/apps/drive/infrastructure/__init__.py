"""Infrastructure layer for drive app.

This package contains integrations with external systems:
- Custom storage backend with direct-upload API (S3/MinIO/R2)
- Object key and metadata helpers

Keep infrastructure concerns separate from business logic.
"""
