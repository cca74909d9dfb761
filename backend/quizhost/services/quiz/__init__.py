"""Quiz domain services: scoring, countdown, session machines and sync.

Everything here except ``scheduler`` is transport-free and can be driven
directly from tests; HTTP routes and socket handlers go through
``quizhost.sessions``.
"""
