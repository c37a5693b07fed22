"""Infrastructure layer — Halo HTTP client, settings storage, files, rendering.

This layer depends on stdlib, the domain models and third-party libs
(httpx, structlog). It must never import from services, commands, or output.
"""
