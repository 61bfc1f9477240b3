import platform
from pathlib import Path
import logging
from sqlalchemy import create_engine, inspect, text, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.schema import MetaData, Table
from piiscan.errors import ConfigError, DataAccessError, InstanceConnectionError, summarize_error
from piiscan.models import ColumnMeta, InstanceInfo, TableMeta

SYSTEM_DATABASES = {'master', 'tempdb', 'model', 'msdb', 'template0', 'template1'}
SYSTEM_SCHEMAS = {
    'information_schema', 'sys', 'guest', 'pg_catalog', 'pg_toast',
    'db_owner', 'db_accessadmin', 'db_securityadmin', 'db_ddladmin',
    'db_backupoperator', 'db_datareader', 'db_datawriter',
    'db_denydatareader', 'db_denydatawriter',
}

DATABASE_QUERIES = {
    'mssql': "SELECT name FROM sys.databases WHERE database_id > 4 AND state = 0 ORDER BY name",
    'postgresql': "SELECT datname FROM pg_database WHERE NOT datistemplate AND datallowconn ORDER BY datname",
}


def describe_instance(url):
    """ComputerName / InstanceName / SqlInstance for a connection URL."""
    backend = url.get_backend_name()
    if backend == 'sqlite' or not url.host:
        return InstanceInfo(platform.node(), backend, url.database or ':memory:')

    computer, _, named = url.host.partition('\\')
    instance = named or ('MSSQLSERVER' if backend == 'mssql' else backend)
    sql_instance = url.host if named else computer
    if url.port:
        sql_instance = f"{sql_instance}:{url.port}"
    return InstanceInfo(computer, instance, sql_instance)


def _matches(value, names):
    return value.casefold() in names


def _name_set(names):
    return {n.strip().casefold() for n in names or () if n and n.strip()}


class DatabaseConnector:
    """Catalog provider and data sampler for one instance, on top of SQLAlchemy."""

    def __init__(self, connection_string, username=None, password=None):
        self.logger = logging.getLogger("DatabaseConnector")
        try:
            url = make_url(connection_string)
        except ArgumentError as e:
            raise ConfigError(f"Invalid connection string '{connection_string}': {e}",
                              target=connection_string, operation="parse", original=e) from e
        if username:
            url = url.set(username=username)
        if password:
            url = url.set(password=password)
        self.url = url
        self.info = describe_instance(url)
        self.engine = None
        self.inspector = None

    @property
    def display_name(self):
        return self.url.render_as_string(hide_password=True)

    @property
    def dialect(self):
        return self.url.get_backend_name()

    @property
    def database(self):
        return 'main' if self.dialect == 'sqlite' else self.url.database

    def connect(self):
        # sqlite3 would silently create a missing database file
        if self._is_sqlite_file() and not Path(self.url.database).is_file():
            raise InstanceConnectionError(
                f"Failure connecting to {self.info.sql_instance}: database file does not exist",
                target=self.info.sql_instance, operation="connect")
        try:
            self.engine = create_engine(self.url)
            # Test connection
            with self.engine.connect():
                pass
            self.inspector = inspect(self.engine)
            self.logger.info(f"Connected to {self.display_name}.")
            return True
        except (SQLAlchemyError, ImportError) as e:
            # ImportError: DBAPI driver for the dialect is not installed
            self.close()
            raise InstanceConnectionError(
                f"Failure connecting to {self.info.sql_instance}: {summarize_error(e)}",
                target=self.info.sql_instance, operation="connect", original=e) from e

    def _is_sqlite_file(self):
        database = self.url.database
        if self.dialect != 'sqlite' or not database or database == ':memory:':
            return False
        return 'uri' not in self.url.query

    def list_databases(self):
        if self.dialect == 'sqlite':
            return ['main']
        query = DATABASE_QUERIES.get(self.dialect)
        if query is None:
            return [self.url.database] if self.url.database else []
        try:
            with self.engine.connect() as conn:
                names = conn.execute(text(query)).scalars().all()
        except SQLAlchemyError as e:
            raise InstanceConnectionError(
                f"Failure listing databases on {self.info.sql_instance}: {summarize_error(e)}",
                target=self.info.sql_instance, operation="list databases", original=e) from e
        return [n for n in names if n.lower() not in SYSTEM_DATABASES]

    def for_database(self, name):
        """Connector bound to database `name` on the same instance."""
        if self.dialect == 'sqlite' or name == self.url.database:
            return self
        other = DatabaseConnector(self.url.set(database=name))
        other.connect()
        return other

    def list_tables(self, tables=None, exclude=None):
        """Returns list of TableMeta, narrowed by the table allow-list and exclusions."""
        wanted = _name_set(tables)
        excluded = _name_set(exclude)
        tables_list = []
        try:
            # For SQLite, schema is None
            if self.dialect == 'sqlite':
                for table_name in self.inspector.get_table_names():
                    tables_list.append(TableMeta(None, table_name))
            else:
                for schema in self.inspector.get_schema_names():
                    if schema.lower() in SYSTEM_SCHEMAS:
                        continue
                    try:
                        for t in self.inspector.get_table_names(schema=schema):
                            tables_list.append(TableMeta(schema, t))
                    except SQLAlchemyError as e:
                        self.logger.debug(f"Could not access schema {schema}: {summarize_error(e)}")
        except SQLAlchemyError as e:
            raise DataAccessError(
                f"Failure listing tables in {self.info.sql_instance}/{self.database}: {summarize_error(e)}",
                target=f"{self.info.sql_instance}/{self.database}", operation="list tables", original=e) from e

        if wanted:
            tables_list = [t for t in tables_list if _matches(t.name, wanted) or _matches(t.full_name, wanted)]
        if excluded:
            tables_list = [t for t in tables_list if not (_matches(t.name, excluded) or _matches(t.full_name, excluded))]
        return tables_list

    def list_columns(self, table, columns=None, exclude=None):
        wanted = _name_set(columns)
        excluded = _name_set(exclude)
        try:
            reflected = self.inspector.get_columns(table.name, schema=table.schema)
        except SQLAlchemyError as e:
            raise DataAccessError(
                f"Failure getting columns for {self.database}.{table.full_name}: {summarize_error(e)}",
                target=table.full_name, operation="list columns", original=e) from e

        result = []
        for col in reflected:
            name = col['name']
            if wanted and not _matches(name, wanted):
                continue
            if _matches(name, excluded):
                continue
            result.append(ColumnMeta(name, str(col['type'])))
        return result

    def sample_rows(self, table, columns, limit=100):
        """
        One SELECT over `columns` capped at `limit` rows (TOP(N) on SQL Server).
        Rows come back as dicts keyed by column name.
        """
        try:
            with self.engine.connect() as conn:
                t = Table(table.name, MetaData(), schema=table.schema, autoload_with=self.engine)
                stmt = select(*[t.c[c] for c in columns]).limit(limit)
                result = conn.execute(stmt)
                return [dict(row._mapping) for row in result]
        except (SQLAlchemyError, KeyError) as e:
            raise DataAccessError(
                f"Failure sampling {self.database}.{table.full_name}: {summarize_error(e)}",
                target=table.full_name, operation="sample", original=e) from e

    def close(self):
        if self.engine:
            self.engine.dispose()
            self.engine = None
            self.inspector = None
