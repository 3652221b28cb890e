"""
FeedFlux Storage Module
======================

Time-series store contract, InfluxDB and in-memory stores, and the event sink.
"""
