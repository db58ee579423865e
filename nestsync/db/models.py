"""Peewee ORM models for the nested-set collection."""

from __future__ import annotations

import contextlib
import datetime as _dt
import logging
from collections.abc import Iterator, Mapping
from typing import Any, ClassVar

import peewee
from playhouse.sqlite_ext import JSONField

from nestsync.core.time_utils import utc_now

logger = logging.getLogger(__name__)

# A proxy that will be initialised with the concrete database instance at runtime.
database_proxy: peewee.Database = peewee.DatabaseProxy()


def _utcnow() -> _dt.datetime:
    return utc_now()


class BaseModel(peewee.Model):
    """Base Peewee model bound to the lazily initialised database proxy."""

    def save(self, *args: Any, **kwargs: Any) -> int:
        """Keep updated_at monotonic on every save."""
        if hasattr(self, "updated_at"):
            self.updated_at = _utcnow()
            only = kwargs.get("only")
            if only is not None:
                kwargs["only"] = [*only, type(self).updated_at]
        return super().save(*args, **kwargs)

    class Meta:
        database = database_proxy
        legacy_table_names = False


class GuardedModel(BaseModel):
    """Model with mass-assignment protection for `fill()`.

    Columns listed in ``guarded`` are skipped by ``fill()`` unless the model
    class is unguarded. Keys that match no column are collected into the
    model's ``payload`` JSON column when it has one.
    """

    guarded: ClassVar[frozenset[str]] = frozenset({"id", "created_at", "updated_at"})
    _unguarded: ClassVar[bool] = False

    @classmethod
    def unguard(cls, state: bool = True) -> None:
        cls._unguarded = state

    @classmethod
    def reguard(cls) -> None:
        cls._unguarded = False

    @classmethod
    def is_unguarded(cls) -> bool:
        return cls._unguarded

    @classmethod
    @contextlib.contextmanager
    def unguarded(cls) -> Iterator[None]:
        """Suspend protection for the block and restore the previous state."""
        previous = cls._unguarded
        cls.unguard()
        try:
            yield
        finally:
            cls.unguard(previous)

    @classmethod
    def is_fillable(cls, name: str) -> bool:
        if cls._unguarded:
            return True
        field = cls._meta.fields.get(name) or cls._meta.combined.get(name)
        canonical = field.name if field is not None else name
        return canonical not in cls.guarded

    def fill(self, attributes: Mapping[str, Any]) -> GuardedModel:
        """Assign a mapping of attributes, honouring the guard."""
        meta = self._meta
        extra: dict[str, Any] = {}
        for name, value in attributes.items():
            if not self.is_fillable(name):
                logger.debug(
                    "model_fill_guarded_attribute_skipped",
                    extra={"model": type(self).__name__, "attribute": name},
                )
                continue
            if name in meta.fields or name in meta.combined:
                setattr(self, name, value)
            else:
                extra[name] = value

        if extra:
            if "payload" not in meta.fields:
                msg = f"{type(self).__name__} has no column for: {', '.join(sorted(extra))}"
                raise AttributeError(msg)
            payload = dict(getattr(self, "payload", None) or {})
            payload.update(extra)
            self.payload = payload
        return self


class Node(GuardedModel):
    """A record in the nested-set collection."""

    guarded: ClassVar[frozenset[str]] = frozenset(
        {"id", "parent", "lft", "rgt", "depth", "created_at", "updated_at"}
    )

    id = peewee.AutoField()
    parent = peewee.ForeignKeyField(
        "self", backref="children", null=True, on_delete="CASCADE"
    )
    lft = peewee.IntegerField()
    rgt = peewee.IntegerField()
    depth = peewee.IntegerField(default=0, constraints=[peewee.Check("depth >= 0")])
    name = peewee.TextField(constraints=[peewee.Check("length(name) > 0")])
    description = peewee.TextField(null=True)
    payload = JSONField(null=True)
    created_at = peewee.DateTimeField(default=_utcnow)
    updated_at = peewee.DateTimeField(default=_utcnow)

    class Meta:
        table_name = "nodes"
        indexes = ((("lft", "rgt"), False),)

    # Columns maintained only by the nested-set primitives.
    STRUCTURAL_FIELDS: ClassVar[tuple[str, ...]] = ("parent", "lft", "rgt", "depth")

    @classmethod
    def data_fields(cls) -> list[peewee.Field]:
        """Columns a data update may write (everything but key and structure)."""
        skip = {"id", "created_at", "updated_at", *cls.STRUCTURAL_FIELDS}
        return [f for f in cls._meta.sorted_fields if f.name not in skip]

    def __repr__(self) -> str:
        return (
            f"<Node id={self.id} parent={self.parent_id} "
            f"lft={self.lft} rgt={self.rgt} depth={self.depth}>"
        )


ALL_MODELS: tuple[type[BaseModel], ...] = (Node,)


def model_to_dict(model: BaseModel | None) -> dict[str, Any] | None:
    """Convert a Peewee model instance to a plain dictionary."""
    if model is None:
        return None
    data: dict[str, Any] = {}
    for field_name in model._meta.sorted_field_names:
        if isinstance(model._meta.fields[field_name], peewee.ForeignKeyField):
            data[field_name] = model.__data__.get(field_name)
            continue
        data[field_name] = getattr(model, field_name)
    return data
