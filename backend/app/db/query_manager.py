"""Chainable async query helpers exposed as `Model.objects`."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlmodel import SQLModel, col, select

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement
    from sqlmodel.ext.asyncio.session import AsyncSession
    from sqlmodel.sql.expression import SelectOfScalar

ModelT = TypeVar("ModelT", bound=SQLModel)


@dataclass(frozen=True)
class QuerySet(Generic[ModelT]):
    """Immutable wrapper around a `select(Model)` statement."""

    model: type[ModelT]
    statement: SelectOfScalar[ModelT]

    def filter(self, *criteria: ColumnElement[bool] | bool) -> QuerySet[ModelT]:
        return QuerySet(self.model, self.statement.where(*criteria))

    def filter_by(self, **kwargs: Any) -> QuerySet[ModelT]:
        return QuerySet(self.model, self.statement.filter_by(**kwargs))

    def order_by(self, *clauses: Any) -> QuerySet[ModelT]:
        return QuerySet(self.model, self.statement.order_by(*clauses))

    def limit(self, count: int) -> QuerySet[ModelT]:
        return QuerySet(self.model, self.statement.limit(count))

    def offset(self, count: int) -> QuerySet[ModelT]:
        return QuerySet(self.model, self.statement.offset(count))

    async def all(self, session: AsyncSession) -> list[ModelT]:
        return list(await session.exec(self.statement))

    async def first(self, session: AsyncSession) -> ModelT | None:
        return (await session.exec(self.statement)).first()


class ModelManager(Generic[ModelT]):
    """Entry point for building queries against a single model."""

    def __init__(self, model: type[ModelT]) -> None:
        self.model = model

    def all_query(self) -> QuerySet[ModelT]:
        return QuerySet(self.model, select(self.model))

    def by_id(self, obj_id: object) -> QuerySet[ModelT]:
        id_column = col(getattr(self.model, "id"))
        return self.all_query().filter(id_column == obj_id)

    def filter(self, *criteria: ColumnElement[bool] | bool) -> QuerySet[ModelT]:
        return self.all_query().filter(*criteria)

    def filter_by(self, **kwargs: Any) -> QuerySet[ModelT]:
        return self.all_query().filter_by(**kwargs)


class ManagerDescriptor:
    """Class-level descriptor returning a manager bound to the owning model."""

    def __get__(self, instance: object, owner: type[ModelT]) -> ModelManager[ModelT]:
        return ModelManager(owner)
