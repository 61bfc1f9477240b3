from dataclasses import dataclass
from enum import Enum
from typing import Optional


class MatchSource(Enum):
    """How a finding was made"""
    NAME_RULE = "KnownType"
    CONTENT_RULE = "Pattern"


@dataclass(frozen=True)
class InstanceInfo:
    computer_name: str
    instance_name: str
    sql_instance: str


@dataclass(frozen=True)
class TableMeta:
    schema: Optional[str]
    name: str

    @property
    def full_name(self):
        return f"{self.schema}.{self.name}" if self.schema else self.name


@dataclass(frozen=True)
class ColumnMeta:
    name: str
    data_type: str = ""


@dataclass(frozen=True)
class ColumnRef:
    """One scan target. At most one Finding exists per ColumnRef in a run."""
    instance: InstanceInfo
    database: str
    schema: Optional[str]
    table: str
    column: str

    @property
    def full_name(self):
        parts = [self.database, self.schema, self.table, self.column]
        return ".".join(p for p in parts if p)


@dataclass(frozen=True)
class Finding:
    column: ColumnRef
    pii_name: str
    pii_category: str
    matched_via: MatchSource
    pattern: str = ""

    def to_record(self):
        ref = self.column
        return {
            'ComputerName': ref.instance.computer_name,
            'InstanceName': ref.instance.instance_name,
            'SqlInstance': ref.instance.sql_instance,
            'Database': ref.database,
            'Schema': ref.schema,
            'Table': ref.table,
            'Column': ref.column,
            'PiiName': self.pii_name,
            'PiiCategory': self.pii_category,
            'FoundWith': self.matched_via.value,
        }
