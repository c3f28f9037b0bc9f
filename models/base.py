from sqlalchemy import MetaData
from sqlalchemy.orm import declarative_base

# Deterministic constraint names, identical on PostgreSQL and SQLite
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Shared Base for all models
Base = declarative_base(metadata=MetaData(naming_convention=NAMING_CONVENTION))
