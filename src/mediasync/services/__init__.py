"""External service integrations.

This module contains thin wrappers for the object store and message bus
that mediasync talks to. Components depend on the small protocols defined
here, which keeps them easy to test with in-memory fakes.
"""
