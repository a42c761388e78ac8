"""
Shared User Messages
====================

Centralized repository for user-facing messages, particularly for errors
reported back to the rule-authoring surface.
"""

ERROR_MESSAGES = {
    # Rules
    "not_found": "The requested rule does not exist.",
    "validation": "The rule is invalid and will not be evaluated.",
    "duplicate": "A rule with this id already exists.",
    "import_format": "Invalid file format. Expected rules array or export object.",
    "import_json": "Failed to parse JSON file.",
    "worldinfo_format": 'Not a valid WorldInfo file. Expected {"entries": {...}}.',
    # Generic
    "default": "An unexpected error occurred.",
}
