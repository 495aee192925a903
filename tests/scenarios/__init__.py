"""End-to-end scenarios for the request engine.

This package contains scenario tests that drive a Client against in-process
FastAPI apps and scripted transports. Each scenario covers one aspect of
request execution: caching, retries, admission, cancellation, streaming and
the built-in pipelines.
"""
