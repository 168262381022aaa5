"""Story engine primitives: variables, tag predicates, ranges, sampling and the deck.

Kept free of FastAPI and Redis concerns so it can be reused by API routes, scripts, and tests.
"""
