import datetime
from decimal import Decimal

import pytest
from sqlalchemy import Column, Date, Integer, MetaData, Numeric, String, Table, create_engine

from piiscan.errors import DataAccessError, InstanceConnectionError
from piiscan.models import ColumnMeta, ColumnRef, InstanceInfo, TableMeta
from piiscan.patterns import ContentPattern, KnownType, RuleSet

INSTANCE = InstanceInfo("testhost", "MSSQLSERVER", "testhost")


def make_ref(column, table="customers", schema="dbo", database="crm", instance=INSTANCE):
    return ColumnRef(instance, database, schema, table, column)


@pytest.fixture
def rules():
    return RuleSet(
        known_types=(
            KnownType("Email", "Personal", ("email", "e_mail")),
            KnownType("Name", "Personal", ("^(first|last|full)[_ ]?name$",)),
            KnownType("Social Security Number", "National ID", ("^ssn$",), "United States", "US"),
        ),
        patterns=(
            ContentPattern("Email", "Personal", r"[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}"),
            ContentPattern("SSN", "National ID", r"^\d{3}-\d{2}-\d{4}$", "United States", "US"),
            ContentPattern("NINO", "National ID", r"^[A-Z]{2}\d{6}[A-D]$", "United Kingdom", "GB"),
        ),
    )


@pytest.fixture
def pii_db(tmp_path):
    """SQLite database with a few PII bearing tables; returns its connection string."""
    path = tmp_path / "crm.db"
    engine = create_engine(f"sqlite:///{path}")
    metadata = MetaData()

    customers = Table(
        "customers", metadata,
        Column("id", Integer, primary_key=True),
        Column("full_name", String(100)),
        Column("email", String(100)),
        Column("notes", String(200)),
        Column("ssn_col", String(20)),
        Column("created", Date),
    )
    orders = Table(
        "orders", metadata,
        Column("id", Integer, primary_key=True),
        Column("contact", String(100)),
        Column("reference", String(20)),
        Column("amount", Numeric(10, 2)),
        Column("billing_address", String(200)),
    )
    Table(
        "empty_table", metadata,
        Column("id", Integer, primary_key=True),
        Column("payload", String(100)),
    )
    metadata.create_all(engine)

    with engine.begin() as conn:
        conn.execute(customers.insert(), [
            {"id": 1, "full_name": "Alice Smith", "email": "alice@example.com", "notes": "call me",
             "ssn_col": "123-45-6789", "created": datetime.date(2023, 1, 1)},
            {"id": 2, "full_name": "Bob Jones", "email": "bob.jones@gmail.com", "notes": None,
             "ssn_col": None, "created": datetime.date(2023, 2, 15)},
            {"id": 3, "full_name": "Charlie Brown", "email": "charlie.b@corp.co", "notes": "vip",
             "ssn_col": "abc", "created": datetime.date(2023, 3, 20)},
        ])
        conn.execute(orders.insert(), [
            {"id": 1, "contact": "bob@corp.co", "reference": "ORD-1001", "amount": Decimal("19.99"),
             "billing_address": "1 Main St"},
            {"id": 2, "contact": None, "reference": "ORD-1002", "amount": Decimal("5.00"),
             "billing_address": "2 High St"},
        ])
    engine.dispose()
    return f"sqlite:///{path}"


class FakeConnector:
    """
    In-memory catalog provider / data sampler.

    `databases` maps database name -> {TableMeta: (column names, rows)}.
    """

    def __init__(self, sql_instance, databases=None, fail_connect=False,
                 failing_samples=(), failing_columns=()):
        self.info = InstanceInfo(sql_instance, "MSSQLSERVER", sql_instance)
        self.display_name = f"fake://{sql_instance}"
        self.databases = databases or {}
        self.fail_connect = fail_connect
        self.failing_samples = set(failing_samples)
        self.failing_columns = set(failing_columns)
        self.current = None
        self.connected = False
        self.closed = False
        self.sample_calls = []

    def connect(self):
        if self.fail_connect:
            raise InstanceConnectionError(
                f"Failure connecting to {self.info.sql_instance}: login failed",
                target=self.info.sql_instance, operation="connect",
                original=RuntimeError("login failed"))
        self.connected = True
        return True

    def list_databases(self):
        return list(self.databases)

    def for_database(self, name):
        self.current = name
        return self

    def list_tables(self, tables=None, exclude=None):
        wanted = {t.casefold() for t in tables or ()}
        excluded = {t.casefold() for t in exclude or ()}
        result = []
        for table in self.databases[self.current]:
            names = {table.name.casefold(), table.full_name.casefold()}
            if wanted and not names & wanted:
                continue
            if names & excluded:
                continue
            result.append(table)
        return result

    def list_columns(self, table, columns=None, exclude=None):
        if table.name in self.failing_columns:
            raise DataAccessError("Failure getting columns", target=table.full_name,
                                  operation="list columns", original=RuntimeError("permission denied"))
        wanted = {c.casefold() for c in columns or ()}
        excluded = {c.casefold() for c in exclude or ()}
        names, _ = self.databases[self.current][table]
        return [ColumnMeta(n, "varchar") for n in names
                if (not wanted or n.casefold() in wanted) and n.casefold() not in excluded]

    def sample_rows(self, table, columns, limit):
        self.sample_calls.append((self.current, table.name, tuple(columns), limit))
        if table.name in self.failing_samples:
            raise DataAccessError("Failure sampling", target=table.full_name, operation="sample",
                                  original=RuntimeError("query timeout"))
        _, rows = self.databases[self.current][table]
        return [{c: row.get(c) for c in columns} for row in rows[:limit]]

    def close(self):
        self.closed = True


@pytest.fixture
def fake_catalog():
    return {
        "crm": {
            TableMeta("dbo", "customers"): (
                ["id", "UserEmail", "ssn_col", "notes"],
                [
                    {"id": 1, "UserEmail": "a@example.com", "ssn_col": "123-45-6789", "notes": "hello"},
                    {"id": 2, "UserEmail": "b@example.com", "ssn_col": None, "notes": None},
                    {"id": 3, "UserEmail": None, "ssn_col": "abc", "notes": "x"},
                ],
            ),
            TableMeta("dbo", "audit"): (
                ["id", "payload"],
                [{"id": 1, "payload": "AB123456C"}],
            ),
            TableMeta("dbo", "empty"): (
                ["id", "contact"],
                [],
            ),
        },
        "hr": {
            TableMeta("dbo", "staff"): (
                ["id", "contact"],
                [{"id": 7, "contact": "jane@corp.co"}],
            ),
        },
    }
