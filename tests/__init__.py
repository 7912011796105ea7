"""
planflow test suite.

The store contract tests run against every backend: the SQLite engine
directly, and the HTTP client talking to the server app in-process.
"""
