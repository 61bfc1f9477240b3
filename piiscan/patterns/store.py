"""
Pattern store.

Loads the two rule sets used by the scanner:

- Known Types: rules matched against column *names*
- Content Patterns: rules matched against sampled column *values*

Both are JSON documents holding an ordered list of objects::

    {"Name": "Email", "Category": "Personal", "Pattern": ["e[_ -]?mail"],
     "Country": "United States", "CountryCode": "US"}

``Country`` and ``CountryCode`` are optional; a rule without either is global.
Rule order is significant, the first matching rule wins.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from piiscan.errors import ConfigError

logger = logging.getLogger("PatternStore")

DATA_DIR = Path(__file__).parent / "data"
DEFAULT_KNOWN_TYPES_PATH = DATA_DIR / "pii-knowntypes.json"
DEFAULT_PATTERNS_PATH = DATA_DIR / "pii-patterns.json"


@dataclass(frozen=True)
class KnownType:
    name: str
    category: str
    patterns: Tuple[str, ...]
    country: Optional[str] = None
    country_code: Optional[str] = None
    regexes: Tuple[re.Pattern, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'regexes', tuple(re.compile(p, re.IGNORECASE) for p in self.patterns))

    @property
    def is_global(self):
        return not self.country and not self.country_code


@dataclass(frozen=True)
class ContentPattern:
    name: str
    category: str
    pattern: str
    country: Optional[str] = None
    country_code: Optional[str] = None
    regex: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'regex', re.compile(self.pattern, re.IGNORECASE))

    @property
    def is_global(self):
        return not self.country and not self.country_code


@dataclass(frozen=True)
class RuleSet:
    known_types: Tuple[KnownType, ...] = ()
    patterns: Tuple[ContentPattern, ...] = ()


def _read_documents(path):
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Rule file not found: {path}", target=str(path), operation="load")
    try:
        with open(path, encoding="utf-8-sig") as f:
            documents = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Could not parse rule file {path}: {e}", target=str(path), operation="load", original=e) from e

    if not isinstance(documents, list):
        raise ConfigError(f"Rule file {path} must contain a list of rules", target=str(path), operation="load")
    for position, doc in enumerate(documents):
        if not isinstance(doc, dict):
            raise ConfigError(f"Rule #{position} in {path} is not an object", target=str(path), operation="load")
        missing = [k for k in ('Name', 'Category', 'Pattern') if not doc.get(k)]
        if missing:
            raise ConfigError(f"Rule #{position} in {path} is missing {', '.join(missing)}", target=str(path), operation="load")
    return documents


def load_known_types(path):
    known_types = []
    for doc in _read_documents(path):
        patterns = doc['Pattern']
        if isinstance(patterns, str):
            patterns = [patterns]
        if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
            raise ConfigError(f"Known type '{doc['Name']}' in {path} has an invalid Pattern list", target=str(path), operation="load")
        try:
            known_types.append(KnownType(
                name=doc['Name'],
                category=doc['Category'],
                patterns=tuple(patterns),
                country=doc.get('Country'),
                country_code=doc.get('CountryCode'),
            ))
        except re.error as e:
            raise ConfigError(f"Known type '{doc['Name']}' in {path} has an invalid regex: {e}", target=str(path), operation="load", original=e) from e
    logger.debug(f"Loaded {len(known_types)} known types from {path}")
    return tuple(known_types)


def load_patterns(path):
    patterns = []
    for doc in _read_documents(path):
        if not isinstance(doc['Pattern'], str):
            raise ConfigError(f"Pattern '{doc['Name']}' in {path} must be a single regex string", target=str(path), operation="load")
        try:
            patterns.append(ContentPattern(
                name=doc['Name'],
                category=doc['Category'],
                pattern=doc['Pattern'],
                country=doc.get('Country'),
                country_code=doc.get('CountryCode'),
            ))
        except re.error as e:
            raise ConfigError(f"Pattern '{doc['Name']}' in {path} has an invalid regex: {e}", target=str(path), operation="load", original=e) from e
    logger.debug(f"Loaded {len(patterns)} content patterns from {path}")
    return tuple(patterns)


def load_rules(pattern_source, known_types_source):
    """Load one content pattern file and one known types file into a RuleSet."""
    return RuleSet(known_types=load_known_types(known_types_source), patterns=load_patterns(pattern_source))


def load_rule_set(pattern_files=(), known_type_files=(), exclude_default_patterns=False, exclude_default_known_types=False):
    """
    Build the RuleSet for a scan: bundled defaults first (unless excluded),
    then each user supplied file in the order given.
    """
    known_types = () if exclude_default_known_types else load_known_types(DEFAULT_KNOWN_TYPES_PATH)
    patterns = () if exclude_default_patterns else load_patterns(DEFAULT_PATTERNS_PATH)

    for path in known_type_files or ():
        known_types += load_known_types(path)
    for path in pattern_files or ():
        patterns += load_patterns(path)

    rules = RuleSet(known_types=known_types, patterns=patterns)
    logger.info(f"Rule set ready: {len(rules.known_types)} known types, {len(rules.patterns)} content patterns")
    return rules


def _normalize(values):
    return {v.strip().casefold() for v in values or () if v and v.strip()}


def _keep(rule, countries, country_codes):
    if rule.is_global:
        return True
    if rule.country and rule.country.casefold() in countries:
        return True
    return bool(rule.country_code and rule.country_code.casefold() in country_codes)


def filter_rules(rules, countries=None, country_codes=None):
    """
    Narrow a RuleSet to the requested countries. Global rules are always kept.
    With no country and no country code requested the RuleSet is returned as is.
    """
    countries = _normalize(countries)
    country_codes = _normalize(country_codes)
    if not countries and not country_codes:
        return rules

    filtered = RuleSet(
        known_types=tuple(k for k in rules.known_types if _keep(k, countries, country_codes)),
        patterns=tuple(p for p in rules.patterns if _keep(p, countries, country_codes)),
    )
    logger.info(
        f"Country filter kept {len(filtered.known_types)}/{len(rules.known_types)} known types "
        f"and {len(filtered.patterns)}/{len(rules.patterns)} content patterns"
    )
    return filtered
