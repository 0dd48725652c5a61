"""
Photography portfolio and blog backend.

This package provides a FastAPI application serving the public site
(blog, galleries, page content), the admin content API and the S3
upload relay, on top of a pluggable record store.
"""
