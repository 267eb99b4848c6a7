"""
HTTP API
========

FastAPI application exposing single-document rendering.
"""
