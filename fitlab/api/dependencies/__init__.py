"""
FastAPI dependencies for request processing.

Dependencies hand the shared gateway and per-request pipeline objects to the
endpoints so tests can swap them out.
"""
