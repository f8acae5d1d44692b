"""
Shared base for all database models.
All models should import Base from here to ensure they're in the same registry.
"""
from sqlalchemy import MetaData
from sqlalchemy.orm import registry

# Stable constraint names so migrations diff cleanly across databases
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "pk": "pk_%(table_name)s",
}

mapper_registry = registry(metadata=MetaData(naming_convention=NAMING_CONVENTION))
Base = mapper_registry.generate_base()
