"""
Tier Render
===========

Batch renderer that turns tiered collections of HTML documents into
screenshots and extracted visible text.

This package provides:
- Tier scanning of a dataset directory into render tasks
- A fixed-size pool of Playwright render sessions draining a task queue
- Live progress tracking with ETA estimation
- Error logging and tier-grouped JSON result output
- A single-document FastAPI render endpoint
"""

__version__ = "1.0.0"
__author__ = "Tier Render Team"
