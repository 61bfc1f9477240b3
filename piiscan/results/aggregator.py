class ResultAggregator:
    """
    Holds the findings of one scan run, at most one per column.

    Columns are registered with discover() as the scanner enumerates them,
    so report() follows enumeration order (database, schema, table, column)
    no matter which classifier produced a finding first.
    """

    def __init__(self):
        self._order = {}
        self._findings = {}

    def discover(self, column):
        if column not in self._order:
            self._order[column] = len(self._order)

    def contains(self, column):
        return column in self._findings

    def record(self, finding):
        if finding.column in self._findings:
            return False
        self._findings[finding.column] = finding
        return True

    def report(self):
        known = [f for f in self._findings.values() if f.column in self._order]
        unknown = [f for f in self._findings.values() if f.column not in self._order]
        known.sort(key=lambda f: self._order[f.column])
        return known + unknown

    def __len__(self):
        return len(self._findings)
