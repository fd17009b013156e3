"""
Core building blocks shared by every domain: DDD base classes, infrastructure
patterns, logging and dependency wiring.
"""
