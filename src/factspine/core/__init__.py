"""Core primitives shared by acquisition, parsing and ingest.

Tags:
    factspine, core
"""
