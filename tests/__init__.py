"""
Test Suite
==========

Test suite matching the tier_render/ package structure.

Test Categories:
- unit: Unit tests for individual components
- integration: End-to-end batch runs and the HTTP API
"""
