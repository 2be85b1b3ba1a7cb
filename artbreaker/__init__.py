"""Artbreaker: AI-edited famous paintings via FLUX.1-Kontext.

Packages:
    - `image`: remote task lifecycle client and orchestration service.
    - `api`: HTTP and CLI adapters over `image.service`.
"""
