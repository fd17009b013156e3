"""
SQLAlchemy persistence: ORM models, error translation and unit of work.
"""
