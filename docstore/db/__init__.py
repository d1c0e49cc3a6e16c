"""DocStore metadata store — async SQLAlchemy tables and repository."""
