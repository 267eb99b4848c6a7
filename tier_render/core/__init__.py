"""
Core Business Logic
==================

Core modules for the batch rendering pipeline.

Modules:
- scanner: Discover tiered HTML documents and build render tasks
- rendering: Playwright render engine and reusable render sessions
- queue: Worker pool draining the shared task queue
- progress: Live progress line with ETA estimation
- error_log: Buffered, timestamped failure records
- aggregator: Tier grouping and JSON result persistence
"""
