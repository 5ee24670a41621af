"""Domain models.

Pure data structures (Pydantic v2): the domain knows nothing about httpx, the CLI
or the environment.
"""
