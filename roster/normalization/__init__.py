"""Normalization package.

Canonicalizes raw person-name strings so that the deduplication passes
and the canonical selector compare names the same way.
"""
