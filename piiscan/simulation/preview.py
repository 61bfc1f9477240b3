import logging


def _scope(names, excluded, label):
    text = ", ".join(names) if names else f"all {label}"
    if excluded:
        text += f" (excluding {', '.join(excluded)})"
    return text


class ScanPreview:
    """
    What-if gate: describes the scan a PiiScanner would run without
    connecting to anything or sampling any data.
    """

    def __init__(self, scanner):
        self.scanner = scanner
        self.logger = logging.getLogger("ScanPreview")

    def describe(self, connectors):
        s = self.scanner
        rules = s.rules
        actions = []
        for connector in connectors:
            actions.append(
                f"Would scan {connector.display_name} "
                f"[databases: {_scope(s.databases, s.exclude_databases, 'databases')}; "
                f"tables: {_scope(s.tables, s.exclude_tables, 'tables')}; "
                f"columns: {_scope(s.columns, s.exclude_columns, 'columns')}] "
                f"using {len(rules.known_types)} known types and {len(rules.patterns)} content patterns, "
                f"sampling up to {s.sample_count} rows per table"
            )
        self.logger.debug(f"Previewed {len(actions)} instances")
        return actions
