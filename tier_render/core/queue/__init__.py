"""
Queue Module
============

Worker pool that drains the shared render-task queue.

Components:
- worker_pool: Fixed-size pool of render sessions with per-task failure isolation
"""
