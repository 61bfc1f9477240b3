import argparse
import csv
import functools
import json
import sys
import logging
from piiscan.config import Config
from piiscan.logging import setup_logging
from piiscan.db import DatabaseConnector
from piiscan.discovery import PiiScanner
from piiscan.errors import ConfigError
from piiscan.patterns import filter_rules, load_rule_set

FIELDS = ['ComputerName', 'InstanceName', 'SqlInstance', 'Database', 'Schema',
          'Table', 'Column', 'PiiName', 'PiiCategory', 'FoundWith']


def build_parser():
    parser = argparse.ArgumentParser(
        prog="piiscan",
        description="Find database columns that likely hold personally identifiable information.")
    parser.add_argument("--sql-instance", action="append", default=[], metavar="URL",
                        help="SQLAlchemy connection string; repeat for several instances")
    parser.add_argument("--username", default=Config.SQL_USERNAME)
    parser.add_argument("--password", default=Config.SQL_PASSWORD)
    parser.add_argument("--database", action="append", default=[])
    parser.add_argument("--exclude-database", action="append", default=[])
    parser.add_argument("--table", action="append", default=[], help="table or schema.table")
    parser.add_argument("--exclude-table", action="append", default=[])
    parser.add_argument("--column", action="append", default=[])
    parser.add_argument("--exclude-column", action="append", default=[])
    parser.add_argument("--country", action="append", default=[])
    parser.add_argument("--country-code", action="append", default=[])
    parser.add_argument("--sample-count", type=int, default=Config.SAMPLE_COUNT)
    parser.add_argument("--known-types-file", action="append", default=[])
    parser.add_argument("--patterns-file", action="append", default=[])
    parser.add_argument("--exclude-default-known-types", action="store_true")
    parser.add_argument("--exclude-default-patterns", action="store_true")
    parser.add_argument("--what-if", action="store_true", help="show what would be scanned, touch nothing")
    parser.add_argument("--raw-errors", action="store_true",
                        help="raise the underlying database errors instead of logging a summary")
    parser.add_argument("--format", choices=["table", "json", "csv"], default="table")
    parser.add_argument("--verbose", action="store_true")
    return parser


def print_findings(findings, fmt, out=None):
    out = out or sys.stdout
    records = [f.to_record() for f in findings]

    if fmt == "json":
        json.dump(records, out, indent=2)
        out.write("\n")
    elif fmt == "csv":
        writer = csv.DictWriter(out, fieldnames=FIELDS)
        writer.writeheader()
        writer.writerows(records)
    else:
        if not records:
            print("No PII columns detected.", file=out)
            return
        print(f"\n[RESULT] Detected {len(records)} PII columns:", file=out)
        for r in records:
            full_table = f"{r['Schema']}.{r['Table']}" if r['Schema'] else r['Table']
            print(f"  - {r['SqlInstance']:<20} | {r['Database']:<12} | {full_table:<20} | {r['Column']:<15} "
                  f"| {r['PiiName']:<25} | {r['PiiCategory']:<15} | {r['FoundWith']}", file=out)


def main(argv=None):
    args = build_parser().parse_args(argv)
    # Keep stdout clean for machine readable output
    stream = sys.stderr if args.format != "table" else None
    try:
        setup_logging(level="DEBUG" if args.verbose else None, stream=stream)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    logger = logging.getLogger("Main")

    instances = args.sql_instance or Config.instances()
    if not instances:
        Config.validate()
        return 2

    try:
        if args.sample_count <= 0:
            raise ConfigError(f"--sample-count must be greater than 0, got {args.sample_count}")

        known_type_files = args.known_types_file or [p for p in [Config.KNOWN_TYPES_PATH] if p]
        pattern_files = args.patterns_file or [p for p in [Config.PATTERNS_PATH] if p]
        rules = load_rule_set(
            pattern_files=pattern_files,
            known_type_files=known_type_files,
            exclude_default_patterns=args.exclude_default_patterns,
            exclude_default_known_types=args.exclude_default_known_types,
        )
        rules = filter_rules(rules, args.country, args.country_code)

        scanner = PiiScanner(
            rules,
            sample_count=args.sample_count,
            databases=args.database,
            tables=args.table,
            columns=args.column,
            exclude_databases=args.exclude_database,
            exclude_tables=args.exclude_table,
            exclude_columns=args.exclude_column,
            raise_errors=args.raw_errors,
            connector_factory=functools.partial(DatabaseConnector, username=args.username, password=args.password),
        )
        findings = scanner.scan(instances, what_if=args.what_if)
    except ConfigError as e:
        logger.critical(f"Configuration error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.what_if:
        print("What-if run: nothing was scanned.")
        return 0

    print_findings(findings, args.format)
    return 0


if __name__ == "__main__":
    sys.exit(main())
