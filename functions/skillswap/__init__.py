"""
SkillSwap API package.

A FastAPI service for bartering skills: users list what they offer or seek,
propose exchanges with each other, and message inside an exchange. Storage
is pluggable between an in-memory store and any SQLAlchemy database.
"""
