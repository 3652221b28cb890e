"""
FeedFlux Ingestion Module
========================

Feed retrieval and decoding components.

This module handles:
- Fetching feed documents with a bounded request timeout
- Atom/RSS detection by root element and structural decoding
- Ordered multi-layout timestamp parsing
- Normalization into canonical events
"""
