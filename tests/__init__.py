"""
BotHunter Harvester Test Suite

This package contains all automated tests for the harvester.

Structure:
- unit/: Fast, isolated unit tests (no browser)
- fixtures/: Captured HTML snapshots of console pages
"""
