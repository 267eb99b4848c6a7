"""
Rendering Module
===============

Render engine abstraction and its Playwright implementation.

Components:
- session: Engine lifecycle, resource-suppressing render sessions, render errors
"""
