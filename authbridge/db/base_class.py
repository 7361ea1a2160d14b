from typing import Any

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase, declared_attr

# Deterministic constraint names so Alembic can drop/alter them later
NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    @declared_attr.directive
    def __tablename__(cls) -> str:  # type: ignore
        return f"{cls.__name__.lower()}s"

    def __repr__(self) -> str:
        keys: dict[str, Any] = {col.key: getattr(self, col.key) for col in self.__table__.primary_key.columns}
        inner = ", ".join(f"{k}={v!r}" for k, v in keys.items())
        return f"<{type(self).__name__} {inner}>"
