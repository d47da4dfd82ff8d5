"""
swapcheck.domain — Canonical data models, enumerations and command payloads.

Nothing in here imports from other swapcheck sub-packages except
``swapcheck.core`` (only stdlib / Pydantic / bson otherwise).
"""
