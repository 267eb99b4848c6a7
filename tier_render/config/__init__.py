"""
Configuration Management
=======================

Environment-based configuration using Pydantic Settings.

Components:
- settings: Run settings, timeouts, paths and browser configuration
- logging: Structured logging configuration
"""
