from piiscan.models import Finding, MatchSource


def classify_by_name(column, known_types):
    """
    Match a column identifier against the known types, in store order.
    A pattern matches if it is found anywhere in the name (case-insensitive).
    Returns the Finding for the first match, or None.
    """
    for known_type in known_types:
        for pattern, regex in zip(known_type.patterns, known_type.regexes):
            if regex.search(column.column):
                return Finding(
                    column=column,
                    pii_name=known_type.name,
                    pii_category=known_type.category,
                    matched_via=MatchSource.NAME_RULE,
                    pattern=pattern,
                )
    return None
