"""
Case-management backend for the housing-crisis intake service.

This package provides a FastAPI application over a hosted relational
database, an identity provider and S3-compatible object storage, each
behind a small client interface with an in-memory implementation for
development and tests.
"""
