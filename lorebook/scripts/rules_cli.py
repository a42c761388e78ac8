"""
Rule File Tool
==============

Offline helpers for rule authors:

    lorebook-rules validate rules.json
    lorebook-rules convert-worldinfo lorebook.json rules.json
    lorebook-rules evaluate rules.json --input "I draw the silver sword" --budget 500
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from lorebook.core.activation.assembly import InjectionAssembler
from lorebook.core.activation.engine import SECONDARY_KEYWORD_MODES, KnowledgeInjectionEngine
from lorebook.core.activation.gate import SeededRandomSource
from lorebook.core.activation.scan import ScanSources
from lorebook.core.rules.application.migration_service import (
    ImportReport,
    export_rules_to_json,
    import_rules_from_json,
    import_worldinfo_from_json,
)
from lorebook.core.rules.application.store import RuleStore
from lorebook.shared.error_handling import map_exception_to_error_data
from lorebook.shared.exceptions import RuleImportError
from lorebook.shared.observability.logging import configure_logging

logger = logging.getLogger(__name__)


def _print_issues(report: ImportReport) -> None:
    for message in report.errors:
        print(f"  {message}", file=sys.stderr)


def cmd_validate(args: argparse.Namespace) -> int:
    report = import_rules_from_json(Path(args.file).read_bytes())
    print(f"{len(report.rules)} valid, {len(report.issues)} invalid")
    _print_issues(report)
    return 1 if report.issues else 0


def cmd_convert_worldinfo(args: argparse.Namespace) -> int:
    report = import_worldinfo_from_json(Path(args.source).read_bytes())
    Path(args.output).write_text(export_rules_to_json(report.rules), encoding="utf-8")
    print(f"Wrote {len(report.rules)} rules to {args.output} ({len(report.issues)} entries skipped)")
    _print_issues(report)
    return 0


def cmd_evaluate(args: argparse.Namespace) -> int:
    report = import_rules_from_json(Path(args.file).read_bytes())
    _print_issues(report)
    store = RuleStore(report.rules)
    logger.debug(f"Loaded {len(store)} rules from {args.file}")

    engine = KnowledgeInjectionEngine(
        random_source=SeededRandomSource(args.seed),
        assembler=InjectionAssembler(
            separator=args.separator,
            include_titles=args.titles,
            header=args.header,
            footer=args.footer,
        ),
        secondary_keyword_mode=args.secondary_mode,
    )
    sources = ScanSources(
        player_input=args.input,
        narration_history=tuple(args.narration),
        memory_notes=tuple(args.memory),
    )
    result = engine.evaluate(store.snapshot(), sources, turn=args.turn, budget=args.budget)

    if args.json:
        payload = {
            "tokensUsed": result.tokens_used,
            "budget": result.budget,
            "included": result.included_ids,
            "outcomes": {rule_id: outcome.value for rule_id, outcome in result.outcomes.items()},
            "block": result.block,
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        for entry in result.entries:
            print(f"+ {entry.rule_id} [{entry.token_weight} tokens] {entry.reason}")
        print(f"{result.tokens_used}/{result.budget} tokens used")
        if result.block:
            print()
            print(result.block)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lorebook-rules", description="Validate, convert and test rule files.")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    parser.add_argument(
        "--trace-rules",
        action="store_true",
        help="Log every per-rule activation decision at DEBUG",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    validate = sub.add_parser("validate", help="Check every rule in a rule file")
    validate.add_argument("file", help="Rule file (export object or legacy array)")
    validate.set_defaults(func=cmd_validate)

    convert = sub.add_parser("convert-worldinfo", help="Convert a WorldInfo lorebook into a rule file")
    convert.add_argument("source", help="WorldInfo JSON file")
    convert.add_argument("output", help="Rule file to write")
    convert.set_defaults(func=cmd_convert_worldinfo)

    evaluate = sub.add_parser("evaluate", help="Run one turn of rule evaluation against a rule file")
    evaluate.add_argument("file", help="Rule file")
    evaluate.add_argument("--input", default="", help="Latest player input")
    evaluate.add_argument("--narration", action="append", default=[], help="Narration entry (repeatable, oldest first)")
    evaluate.add_argument("--memory", action="append", default=[], help="Memory note (repeatable, oldest first)")
    evaluate.add_argument("--budget", type=int, default=5000, help="Token budget (default: 5000)")
    evaluate.add_argument("--turn", type=int, default=1, help="Turn number (default: 1)")
    evaluate.add_argument("--seed", type=int, default=None, help="Seed for probability rolls")
    evaluate.add_argument("--separator", default="\n\n", help="Separator between injected rules")
    evaluate.add_argument("--titles", action="store_true", help="Head injected rules with title, priority and keywords")
    evaluate.add_argument("--header", help="Line opening the injection block")
    evaluate.add_argument("--footer", help="Line closing the block; may use {count} and {tokens}")
    evaluate.add_argument(
        "--secondary-mode",
        choices=SECONDARY_KEYWORD_MODES,
        default=SECONDARY_KEYWORD_MODES[0],
        help="How secondary keywords take part in triggering",
    )
    evaluate.add_argument("--json", action="store_true", help="Print the result as JSON")
    evaluate.set_defaults(func=cmd_evaluate)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(log_level=args.log_level, json_format=False, rule_trace=args.trace_rules or None)

    try:
        return args.func(args)
    except (OSError, RuleImportError) as e:
        error = map_exception_to_error_data(e)
        print(f"Error [{error['code']}]: {error['details']}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
