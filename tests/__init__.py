"""
docsync Test Suite.

This package contains:
- unit/: Unit tests (no network, in-memory store and feeds)
- integration/: Integration tests (ContentSource over mocked HTTP)
"""
