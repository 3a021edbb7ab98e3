from enum import Enum

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def enum_values(enum_cls: type[Enum]) -> list[str]:
    # Persist enum values ("Monday", "FullTime") rather than member names.
    return [item.value for item in enum_cls]
