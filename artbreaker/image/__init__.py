"""FLUX.1-Kontext image editing package.

Scope:
    Provides the remote task lifecycle client (upload, submit, poll), the painting
    catalog, and the orchestration service used by the API and CLI adapters.

Non-goals:
    - No local image processing or inference.
    - No persistence across sessions.
    - No concurrent tasks within a single service instance.
"""
