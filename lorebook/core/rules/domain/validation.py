"""
Rule Validation
===============

Collects human-readable problems with a rule. A rule with a blocking problem
is excluded from evaluation; it is never corrected behind the author's back.

Keywords on an always-active rule are reported but do not block: the rule is
still injected and its keyword fields are simply never evaluated.
"""

from lorebook.core.rules.domain.rule import MAX_KEYWORD_LENGTH, MAX_KEYWORDS_PER_FIELD, Rule

IGNORED_KEYWORDS_MESSAGE = "Always active rules should not have keywords (keywords will be ignored)"

NON_BLOCKING_MESSAGES = frozenset({IGNORED_KEYWORDS_MESSAGE})


def _validate_keyword_field(label: str, values: list[str]) -> list[str]:
    errors = []
    if any(not isinstance(v, str) or not v.strip() for v in values):
        errors.append(f"{label} cannot be empty")
    if len(values) > MAX_KEYWORDS_PER_FIELD:
        errors.append(f"{label} are limited to {MAX_KEYWORDS_PER_FIELD} entries (got {len(values)})")
    if any(isinstance(v, str) and len(v) > MAX_KEYWORD_LENGTH for v in values):
        errors.append(f"{label} must be at most {MAX_KEYWORD_LENGTH} characters")
    return errors


def validate_rule(rule: Rule) -> list[str]:
    """Validate rule configuration. Returns a list of errors (empty when valid)."""
    errors: list[str] = []

    if not rule.content or not rule.content.strip():
        errors.append("Rule content cannot be empty")

    errors.extend(_validate_keyword_field("Keywords", rule.keywords))
    errors.extend(_validate_keyword_field("Secondary keywords", rule.secondary_keywords))

    if not 0 <= rule.probability <= 100:
        errors.append("Probability must be between 0 and 100")

    if rule.always_active and rule.has_keywords:
        errors.append(IGNORED_KEYWORDS_MESSAGE)

    if rule.order < 0:
        errors.append("Order must be a positive number")

    if rule.max_activations_per_turn is not None and rule.max_activations_per_turn < 1:
        errors.append("Max activations per turn must be at least 1")

    if rule.scan_depth < 1:
        errors.append("Scan depth must be at least 1")

    if rule.token_weight is not None and rule.token_weight < 0:
        errors.append("Token weight cannot be negative")

    return errors


def blocking_errors(errors: list[str]) -> list[str]:
    """The subset of ``validate_rule`` messages that exclude a rule from evaluation."""
    return [e for e in errors if e not in NON_BLOCKING_MESSAGES]


def is_valid(rule: Rule) -> bool:
    return not blocking_errors(validate_rule(rule))
