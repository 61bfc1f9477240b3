import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from piiscan.errors import DataAccessError, PiiScanError, summarize_error
from piiscan.models import TableMeta


@dataclass(frozen=True)
class Sample:
    """Rows sampled from one table, limited to the columns under evaluation."""
    table: TableMeta
    columns: Tuple[str, ...]
    rows: Tuple[Dict[str, Any], ...] = ()
    _values: Dict[str, List[Any]] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        values = {c: [] for c in self.columns}
        for row in self.rows:
            for c in self.columns:
                values[c].append(row.get(c))
        object.__setattr__(self, '_values', values)

    @property
    def is_empty(self):
        return not self.rows

    def values(self, column):
        return self._values.get(column, [])

    def __len__(self):
        return len(self.rows)


class SamplingCoordinator:
    def __init__(self, sample_count=100):
        self.sample_count = sample_count
        self.logger = logging.getLogger("SamplingCoordinator")

    def pending_columns(self, columns, results):
        """Columns that still need content classification."""
        return [c for c in columns if not results.contains(c)]

    def get_sample(self, sampler, table, columns):
        """
        Fetch up to sample_count rows for all `columns` of `table` in one query.
        Raises DataAccessError when the query fails.
        """
        columns = tuple(columns)
        if not columns:
            return Sample(table, columns)
        try:
            rows = sampler.sample_rows(table, list(columns), self.sample_count)
        except PiiScanError:
            raise
        except Exception as e:
            raise DataAccessError(f"Failure sampling {table.full_name}: {summarize_error(e)}",
                                  target=table.full_name, operation="sample", original=e) from e

        sample = Sample(table, columns, tuple(rows))
        self.logger.debug(f"Sampled {len(sample)} rows from {table.full_name} ({len(columns)} columns)")
        return sample
