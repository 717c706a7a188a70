"""SQLAlchemy persistence adapter: tables and connection handling."""
