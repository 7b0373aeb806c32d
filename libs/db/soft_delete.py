"""Soft-delete interception for SQLAlchemy sessions.

Every model deriving from ``SoftDeleteMixin`` is registered automatically.
Once ``install_soft_delete`` has been applied to a session class or
sessionmaker:

- ORM ``SELECT`` statements (including relationship loads) get
  ``deleted_at IS NULL`` added for each registered entity they touch.
- ``delete(Model).where(...)`` against a registered entity is rewritten to
  ``UPDATE ... SET deleted_at = now() WHERE ... AND deleted_at IS NULL``.
- Bulk ``update(Model)`` against a registered entity only touches active
  rows.
- ``session.delete(obj)`` is converted at flush time into the same update.

Per-statement bypass via execution options:

    select(User).execution_options(include_deleted=True)
    delete(User).where(...).execution_options(hard_delete=True)
"""

from typing import Any

from sqlalchemy import event, update
from sqlalchemy.orm import ORMExecuteState, Session, with_loader_criteria

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.db.base import Base, SoftDeleteMixin

logger = get_logger(__name__)

INCLUDE_DELETED = "include_deleted"
HARD_DELETE = "hard_delete"


def is_soft_deletable(model: Any) -> bool:
    """True when ``model`` (class or instance) is a registered soft-deletable entity."""
    cls = model if isinstance(model, type) else type(model)
    return issubclass(cls, SoftDeleteMixin)


def soft_deletable_models() -> list[type]:
    """All mapped classes currently registered for soft delete."""
    return sorted(
        (
            mapper.class_
            for mapper in Base.registry.mappers
            if is_soft_deletable(mapper.class_)
        ),
        key=lambda cls: cls.__name__,
    )


def _filter_active_rows(orm_execute_state: ORMExecuteState) -> None:
    if orm_execute_state.execution_options.get(INCLUDE_DELETED, False):
        return
    # Refreshing columns of an already-loaded row must not hide it
    if orm_execute_state.is_column_load:
        return

    orm_execute_state.statement = orm_execute_state.statement.options(
        with_loader_criteria(
            SoftDeleteMixin,
            lambda cls: cls.deleted_at.is_(None),
            include_aliases=True,
        )
    )


def _rewrite_delete(orm_execute_state: ORMExecuteState):
    if orm_execute_state.execution_options.get(HARD_DELETE, False):
        return None

    mapper = orm_execute_state.bind_mapper
    if mapper is None or not is_soft_deletable(mapper.class_):
        return None

    model = mapper.class_
    statement = orm_execute_state.statement
    soft_update = update(model).where(model.deleted_at.is_(None))
    if statement.whereclause is not None:
        soft_update = soft_update.where(statement.whereclause)
    soft_update = soft_update.values(deleted_at=utc_now())

    logger.debug(
        "Rewrote DELETE into soft delete",
        extra={"extra_fields": {"model": model.__name__}},
    )
    # Executed as a fresh statement so none of the DELETE's ORM options leak in
    return orm_execute_state.session.execute(
        soft_update,
        orm_execute_state.parameters,
        execution_options={"synchronize_session": "fetch"},
    )


def _scope_update(orm_execute_state: ORMExecuteState) -> None:
    if orm_execute_state.execution_options.get(INCLUDE_DELETED, False):
        return
    mapper = orm_execute_state.bind_mapper
    if mapper is None or not is_soft_deletable(mapper.class_):
        return
    model = mapper.class_
    orm_execute_state.statement = orm_execute_state.statement.where(
        model.deleted_at.is_(None)
    )


def _on_do_orm_execute(orm_execute_state: ORMExecuteState):
    if orm_execute_state.is_select:
        _filter_active_rows(orm_execute_state)
        return None
    if orm_execute_state.is_update:
        _scope_update(orm_execute_state)
        return None
    if orm_execute_state.is_delete:
        return _rewrite_delete(orm_execute_state)
    return None


def _on_before_flush(session: Session, flush_context, instances) -> None:
    now = None
    for obj in list(session.deleted):
        if not is_soft_deletable(obj):
            continue
        if session.info.get(HARD_DELETE, False):
            continue
        now = now or utc_now()
        # Turning the pending DELETE back into an UPDATE
        session.add(obj)
        if obj.deleted_at is None:
            obj.deleted_at = now


def install_soft_delete(target) -> None:
    """
    Attach the interceptor to a ``Session`` subclass or sync ``sessionmaker``.

    Idempotent: installing twice on the same target is a no-op.
    """
    if event.contains(target, "do_orm_execute", _on_do_orm_execute):
        return
    event.listen(target, "do_orm_execute", _on_do_orm_execute)
    event.listen(target, "before_flush", _on_before_flush)


class SoftDeleteSession(Session):
    """
    Sync session class with the interceptor installed.

    Pass as ``sync_session_class`` to ``async_sessionmaker`` so every
    ``AsyncSession`` it produces is covered.
    """


install_soft_delete(SoftDeleteSession)
