import re
import sys
from logging.config import fileConfig

from alembic import context
from alembic.autogenerate import render
from sqlalchemy import engine_from_config, pool

from app.database import engine, get_db_schema
from app.model.db import Base
from config import DATABASE_URL

config = context.config
fileConfig(config.config_file_name)

# MetaData object for 'autogenerate' support
target_metadata = Base.metadata

schema = get_db_schema()

# Tables owned by the relayer; the database may be shared with other services
RELAYER_TABLE_PREFIX = "bridge_"


def include_name(name, type_, parent_names):
    if type_ == "schema":
        return name in [None, schema]
    if type_ == "table":
        return name.startswith(RELAYER_TABLE_PREFIX)
    return True


def configure(dialect_name: str, **kwargs):
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        version_table_schema=schema,
        include_schemas=schema is not None,
        include_name=include_name,
        # SQLite cannot ALTER columns in place
        render_as_batch=dialect_name == "sqlite",
        **kwargs,
    )


def run_migrations_offline():
    """Emit the migration SQL to the script output"""
    configure(
        engine.dialect.name,
        url=DATABASE_URL,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    """Run migrations against DATABASE_URL"""
    config_ini = config.get_section(config.config_ini_section)
    config_ini["sqlalchemy.url"] = DATABASE_URL
    connectable = engine_from_config(
        config_ini, prefix="sqlalchemy.", poolclass=pool.NullPool
    )
    with connectable.connect() as connection:
        configure(connection.dialect.name, connection=connection)
        with context.begin_transaction():
            context.run_migrations()


def render_op_with_schema(autogen_context, op):
    """Render operations with the schema of the migration environment

    Generated revisions take the schema from DATABASE_SCHEMA at run time
    instead of the schema of the environment that generated them.
    """
    lines = []
    for line in _render_op(autogen_context, op):
        if "get_db_schema())" not in line:
            if "schema=" in line:
                line = re.sub(r"schema=(.|\s)*\)$", "schema=get_db_schema())", line)
            else:
                line = re.sub(r"\)$", ", schema=get_db_schema())", line)
        lines.append(line)
    return lines


argv = sys.argv
if "--autogenerate" in argv:
    _render_op = render.render_op
    render.render_op = render_op_with_schema

if "--sql" in argv:
    if schema is not None and engine.name == "postgresql":
        print(f"SET SEARCH_PATH TO {schema};")

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
