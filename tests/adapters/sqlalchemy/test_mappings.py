from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import create_engine, inspect, text

from profilesync.adapters.sqlalchemy import create_all_tables, start_mappers
from profilesync.domain.model import Domain, ProfileField
from tests.support.updates import make_field

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine
    from sqlalchemy.orm import Session

_TABLES = {"profile_field", "audit_log", "conflict_record", "undo_record", "unified_identity"}


def test_start_mappers_is_idempotent() -> None:
    start_mappers()
    start_mappers()


def test_migrations_create_every_table(sqlite_engine: Engine) -> None:
    table_names = set(inspect(sqlite_engine).get_table_names())

    assert table_names >= _TABLES | {"alembic_version"}


def test_create_all_tables_matches_migrated_schema(sqlite_engine: Engine) -> None:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    create_all_tables(engine)

    created = inspect(engine)
    migrated = inspect(sqlite_engine)
    for table in _TABLES:
        created_columns = {column["name"] for column in created.get_columns(table)}
        migrated_columns = {column["name"] for column in migrated.get_columns(table)}
        assert created_columns == migrated_columns, table
    engine.dispose()


def test_json_values_keep_their_type(sqlite_session: Session) -> None:
    flag = make_field(True, domain=Domain.RISK_FACTORS, field="suicidalIdeation")
    context = make_field({"guardian": "aunt"}, domain=Domain.FAMILY, field="familyContext")
    sqlite_session.add_all([flag, context])
    sqlite_session.commit()
    sqlite_session.expunge_all()

    raw = sqlite_session.execute(
        text("SELECT value FROM profile_field WHERE field = 'suicidalIdeation'")
    ).scalar_one()
    stored = sqlite_session.get(ProfileField, flag.id)

    assert raw == "true"
    assert stored is not None
    assert stored.value is True
    assert stored.version == 1
    assert stored.updated_at.tzinfo is not None
