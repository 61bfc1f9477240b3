import logging
from piiscan.classification import classify_by_content, classify_by_name
from piiscan.db import DatabaseConnector
from piiscan.discovery.sampling import SamplingCoordinator
from piiscan.errors import DataAccessError, InstanceConnectionError, summarize_error
from piiscan.models import ColumnRef
from piiscan.results import ResultAggregator
from piiscan.simulation import ScanPreview


class PiiScanner:
    """
    Walks instances -> databases -> tables -> columns and records at most
    one PII finding per column.

    Column names are checked first. Columns without a name match are sampled
    once per table and checked against the content patterns.
    Instance and table failures are logged and the scan moves on to the next
    sibling, unless raise_errors is set, in which case the underlying error
    is raised as is.
    """

    def __init__(self, rules, sample_count=100, databases=None, tables=None, columns=None,
                 exclude_databases=None, exclude_tables=None, exclude_columns=None,
                 raise_errors=False, connector_factory=DatabaseConnector):
        self.rules = rules
        self.sampling = SamplingCoordinator(sample_count)
        self.databases = list(databases or [])
        self.tables = list(tables or [])
        self.columns = list(columns or [])
        self.exclude_databases = list(exclude_databases or [])
        self.exclude_tables = list(exclude_tables or [])
        self.exclude_columns = list(exclude_columns or [])
        self.raise_errors = raise_errors
        self.connector_factory = connector_factory
        self.logger = logging.getLogger("PiiScanner")

    @property
    def sample_count(self):
        return self.sampling.sample_count

    def scan(self, instances, what_if=False):
        """
        Scans every instance and returns the findings in discovery order.
        With what_if, only describes what would be scanned; no connection is made.
        """
        # Parse every instance up front: a bad connection string is fatal
        connectors = [self.connector_factory(i) for i in instances]

        if what_if:
            for line in ScanPreview(self).describe(connectors):
                self.logger.info(f"What if: {line}")
            return []

        results = ResultAggregator()
        for connector in connectors:
            self.scan_instance(connector, results)

        findings = results.report()
        self.logger.info(f"Scan complete: {len(findings)} PII columns found")
        return findings

    def scan_instance(self, connector, results):
        instance = connector.info
        try:
            connector.connect()
            available = connector.list_databases()
        except InstanceConnectionError as e:
            connector.close()
            self._report(e, f"instance {instance.sql_instance}")
            return

        try:
            for database in self._select_databases(available, instance):
                self._scan_database(connector, database, results)
        finally:
            connector.close()

    def _select_databases(self, available, instance):
        excluded = {d.casefold() for d in self.exclude_databases}
        if not self.databases:
            return [d for d in available if d.casefold() not in excluded]

        by_name = {d.casefold(): d for d in available}
        selected = []
        for requested in self.databases:
            name = by_name.get(requested.casefold())
            if name is None:
                self.logger.info(f"Database {requested} not found on {instance.sql_instance}, skipping")
            elif name.casefold() not in excluded and name not in selected:
                selected.append(name)
        return selected

    def _scan_database(self, connector, database, results):
        instance = connector.info
        try:
            db = connector.for_database(database)
        except InstanceConnectionError as e:
            self._report(e, f"database {instance.sql_instance}/{database}")
            return

        try:
            try:
                tables = db.list_tables(self.tables, self.exclude_tables)
            except DataAccessError as e:
                self._report(e, f"database {instance.sql_instance}/{database}")
                return

            if not tables:
                self.logger.info(f"No tables to scan in {instance.sql_instance}/{database}")
            else:
                self.logger.info(f"Scanning {len(tables)} tables in {instance.sql_instance}/{database}")
            for table in tables:
                self._scan_table(db, database, table, results)
        finally:
            if db is not connector:
                db.close()

    def _scan_table(self, db, database, table, results):
        try:
            columns = db.list_columns(table, self.columns, self.exclude_columns)
        except DataAccessError as e:
            self._report(e, f"table {db.info.sql_instance}/{database}.{table.full_name}")
            return

        refs = [ColumnRef(db.info, database, table.schema, table.name, c.name) for c in columns]
        for ref in refs:
            results.discover(ref)
            if results.contains(ref):
                continue
            finding = classify_by_name(ref, self.rules.known_types)
            if finding and results.record(finding):
                self.logger.debug(f"{ref.full_name} matched known type {finding.pii_name} ({finding.pattern})")

        pending = self.sampling.pending_columns(refs, results)
        if not pending or not self.rules.patterns:
            return

        try:
            sample = self.sampling.get_sample(db, table, [r.column for r in pending])
        except DataAccessError as e:
            self._report(e, f"table {db.info.sql_instance}/{database}.{table.full_name}")
            return

        if sample.is_empty:
            self.logger.info(f"Table {db.info.sql_instance}/{database}.{table.full_name} returned no rows, skipping content scan")
            return

        for ref in pending:
            if results.contains(ref):
                continue
            finding = classify_by_content(ref, sample, self.rules.patterns)
            if finding and results.record(finding):
                self.logger.debug(f"{ref.full_name} matched pattern {finding.pii_name} ({finding.pattern})")

    def _report(self, error, scope):
        if self.raise_errors:
            if error.original is not None:
                raise error.original
            raise error
        self.logger.error(f"Skipping {scope} during '{error.operation}': {summarize_error(error)}")
