"""
Data Models
===========

Pydantic models for render tasks, task outcomes, error records and run summaries.
"""
