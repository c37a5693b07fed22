"""Domain layer — front-matter codec, posts, sites, taxonomy.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
