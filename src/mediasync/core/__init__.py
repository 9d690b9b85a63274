"""Core pipeline orchestration.

This module contains the driver that walks the card list and runs each card
through parsing, catalog reconciliation, file discovery and publishing.
"""
