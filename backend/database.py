import logging
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core import config

logger = logging.getLogger(__name__)


def _connect_args(database_url: str) -> dict:
    if database_url.startswith('sqlite'):
        return {'check_same_thread': False}
    return {}


engine = create_engine(config.DATABASE_URL, connect_args=_connect_args(config.DATABASE_URL))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

ACTIVE_SLOT_INDEX_NAME = 'uq_citas_slot_activa'
PARTIAL_INDEX_DIALECTS = {'sqlite', 'postgresql'}

_schema_lock = Lock()
_schedule_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_schedule_schema(bind=None) -> None:
    """Bring tables created by older deployments up to the current layout.

    ``create_all`` never alters an existing table, so columns added since the
    first release are patched in here along with the lookup indexes.
    """
    global _schedule_schema_checked

    if _schedule_schema_checked:
        return

    bind = bind or engine

    with _schema_lock:
        if _schedule_schema_checked:
            return

        with bind.begin() as connection:
            # Inspector and DDL share one connection and transaction.
            inspector = inspect(connection)
            table_names = set(inspector.get_table_names())

            if 'horarios_medicos' in table_names:
                existing_columns = {column['name'] for column in inspector.get_columns('horarios_medicos')}
                migration_steps = [
                    ('duracion_cita', 'ALTER TABLE horarios_medicos ADD COLUMN duracion_cita INTEGER DEFAULT 30'),
                    ('disponible', 'ALTER TABLE horarios_medicos ADD COLUMN disponible BOOLEAN DEFAULT TRUE'),
                ]
                for column_name, statement in migration_steps:
                    if column_name not in existing_columns:
                        connection.execute(text(statement))
                # Legacy rows kept the on/off flag in ``activo``.
                if 'activo' in existing_columns and 'disponible' not in existing_columns:
                    connection.execute(text('UPDATE horarios_medicos SET disponible = activo'))
                connection.execute(
                    text(
                        'CREATE INDEX IF NOT EXISTS idx_horarios_medico_dia '
                        'ON horarios_medicos(medico_id, dia_semana, hora_inicio)'
                    )
                )

            if 'citas' in table_names:
                existing_columns = {column['name'] for column in inspector.get_columns('citas')}
                migration_steps = [
                    ('notas', 'ALTER TABLE citas ADD COLUMN notas TEXT'),
                    ('fecha_actualizacion', 'ALTER TABLE citas ADD COLUMN fecha_actualizacion TIMESTAMP'),
                ]
                for column_name, statement in migration_steps:
                    if column_name not in existing_columns:
                        connection.execute(text(statement))
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_citas_medico_fecha ON citas(medico_id, fecha, hora)')
                )
                if bind.dialect.name in PARTIAL_INDEX_DIALECTS:
                    _create_active_slot_index(connection)

        _schedule_schema_checked = True


def find_double_booked_slots(connection) -> list[tuple]:
    """Slots holding more than one pending or confirmed appointment."""
    rows = connection.execute(
        text(
            'SELECT medico_id, fecha, hora, COUNT(*) FROM citas '
            "WHERE estado IN ('pendiente', 'confirmada') "
            'GROUP BY medico_id, fecha, hora HAVING COUNT(*) > 1'
        )
    )
    return [tuple(row) for row in rows]


def _create_active_slot_index(connection) -> None:
    duplicates = find_double_booked_slots(connection)
    if duplicates:
        # The unique index cannot be built until these rows are resolved by hand.
        logger.warning(
            'Skipping %s: %s slot(s) already hold more than one active appointment: %s',
            ACTIVE_SLOT_INDEX_NAME,
            len(duplicates),
            ', '.join(f'doctor {doctor_id} {slot_date} {slot_time}' for doctor_id, slot_date, slot_time, _ in duplicates),
        )
        return

    connection.execute(
        text(
            f'CREATE UNIQUE INDEX IF NOT EXISTS {ACTIVE_SLOT_INDEX_NAME} '
            "ON citas(medico_id, fecha, hora) WHERE estado IN ('pendiente', 'confirmada')"
        )
    )
