import enum
from typing import Type

from sqlalchemy import Enum as SAEnum


def _enum_values(enum_cls: Type[enum.Enum]) -> list[str]:
    return [e.value for e in enum_cls]


def StatusEnum(enum_cls: Type[enum.Enum], name: str) -> SAEnum:
    """String-backed enum column storing the member *values* ("signed", not "SIGNED").

    Stored as VARCHAR with a CHECK constraint so SQLite and Postgres share one
    schema, and so the partial indexes can compare against plain literals.
    """
    return SAEnum(
        enum_cls,
        name=name,
        values_callable=_enum_values,
        native_enum=False,
        create_constraint=True,
        validate_strings=True,
        length=32,
    )
