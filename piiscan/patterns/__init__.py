from piiscan.patterns.store import (
    ContentPattern,
    KnownType,
    RuleSet,
    filter_rules,
    load_rule_set,
    load_rules,
)
