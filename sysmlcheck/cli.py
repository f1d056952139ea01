"""CLI entrypoints for sysmlcheck commands."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, List

from .coverage import format_coverage_result, format_manifest_coverage_result
from .logging import configure_logging
from .models import ValidationResult
from .orchestrator import Auditor, DiagramRun


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the repository root (defaults to current directory).",
    )


def _add_json_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON instead of a text report.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sysmlcheck",
        description="Validate SysML model corpora and extract D2 diagrams from them.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write detailed logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser(
        "validate",
        help="Run every structural check over the model corpus.",
    )
    _add_verbose_option(validate_parser, suppress_default=True)
    _add_path_argument(validate_parser)
    _add_json_option(validate_parser)

    coverage_parser = subparsers.add_parser(
        "coverage",
        help="Report how many of a cycle's source files its outputs reference.",
    )
    _add_verbose_option(coverage_parser, suppress_default=True)
    coverage_parser.add_argument("cycle", help="Cycle number or key, e.g. 1 or cycle1.")
    _add_path_argument(coverage_parser)
    _add_json_option(coverage_parser)

    manifest_parser = subparsers.add_parser(
        "check-manifest",
        help="Gate the manifest on how much of the repository its patterns cover.",
    )
    _add_verbose_option(manifest_parser, suppress_default=True)
    _add_path_argument(manifest_parser)
    manifest_parser.add_argument(
        "--threshold",
        type=int,
        default=None,
        help="Minimum coverage percentage (defaults to the configured value, 95).",
    )
    _add_json_option(manifest_parser)

    diagrams_parser = subparsers.add_parser(
        "diagrams",
        help="Extract D2 diagrams from the model corpus.",
    )
    _add_verbose_option(diagrams_parser, suppress_default=True)
    _add_path_argument(diagrams_parser)
    diagrams_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Directory for the generated .d2 files (defaults to .sysml/_diagrams).",
    )
    diagrams_parser.add_argument(
        "--corpus",
        type=Path,
        default=None,
        help="Read a concatenated corpus file instead of scanning the model tree.",
    )
    _add_json_option(diagrams_parser)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for sysmlcheck commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    auditor = Auditor()

    if args.command == "validate":
        try:
            result = auditor.run_validate(args.path)
        except (FileNotFoundError, NotADirectoryError) as exc:
            parser.exit(1, f"{exc}\n")
        except RuntimeError as exc:
            parser.exit(1, f"sysmlcheck validate failed: {exc}\n")
        if args.json:
            _print_json(result.to_dict())
        else:
            print(format_validation_result(result))
        if result.issue_count:
            parser.exit(1)
    elif args.command == "coverage":
        try:
            coverage = auditor.run_cycle_coverage(args.path, args.cycle)
        except (FileNotFoundError, NotADirectoryError) as exc:
            parser.exit(1, f"{exc}\n")
        except RuntimeError as exc:
            parser.exit(1, f"sysmlcheck coverage failed: {exc}\n")
        if args.json:
            _print_json(asdict(coverage))
        else:
            print(f"Cycle {coverage.cycle}")
            print(format_coverage_result(coverage))
        if coverage.coverage_percent < 100:
            parser.exit(1)
    elif args.command == "check-manifest":
        try:
            gate = auditor.run_manifest_check(args.path, threshold=args.threshold)
        except (FileNotFoundError, NotADirectoryError) as exc:
            parser.exit(1, f"{exc}\n")
        except RuntimeError as exc:
            parser.exit(1, f"sysmlcheck check-manifest failed: {exc}\n")
        if args.json:
            _print_json(asdict(gate))
        else:
            print(format_manifest_coverage_result(gate.coverage))
            print()
            print(gate.message)
        if not gate.accepted:
            parser.exit(1)
    elif args.command == "diagrams":
        try:
            run = auditor.run_diagrams(
                args.path,
                output_dir=args.output,
                corpus_file=args.corpus,
            )
        except (FileNotFoundError, NotADirectoryError) as exc:
            parser.exit(1, f"{exc}\n")
        except (RuntimeError, ValueError) as exc:
            parser.exit(1, f"sysmlcheck diagrams failed: {exc}\n")
        if args.json:
            _print_json(
                {
                    "diagrams": [diagram.to_dict() for diagram in run.diagrams],
                    "written": [str(path) for path in run.written],
                }
            )
        else:
            print(format_diagram_run(run))
    elif args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def format_validation_result(result: ValidationResult) -> str:
    lines: List[str] = [
        f"Manifest: {'found' if result.manifest_exists else 'missing'}",
        f"Model files: {result.valid_file_count}/{result.total_file_count} valid",
    ]

    if result.manifest_errors:
        lines.extend(["", "Manifest errors:"])
        lines.extend(f"  - {error}" for error in result.manifest_errors)

    if result.missing_outputs:
        lines.extend(["", "Missing expected outputs:"])
        lines.extend(f"  - {output.path}" for output in result.missing_outputs)

    if result.syntax_errors:
        lines.extend(["", "Syntax errors:"])
        for issue in result.syntax_errors:
            lines.append(f"  {issue.file}")
            lines.extend(f"    {error}" for error in issue.errors)

    if result.file_coverage_mismatches:
        lines.extend(["", "File coverage mismatches:"])
        for mismatch in result.file_coverage_mismatches:
            lines.append(
                f"  {mismatch.cycle}: {mismatch.covered}/{mismatch.expected} files referenced"
            )
            lines.extend(f"    - {path}" for path in mismatch.uncovered_files[:20])
            if len(mismatch.uncovered_files) > 20:
                lines.append(f"    ... and {len(mismatch.uncovered_files) - 20} more")

    if result.orphaned_files:
        lines.extend(["", "Orphaned files:"])
        lines.extend(f"  - {path}" for path in result.orphaned_files)

    if result.missing_references:
        lines.extend(["", "Missing references:"])
        for ref in result.missing_references:
            lines.append(f"  {ref.file}:{ref.line} {ref.kind} {ref.reference}")

    if result.broken_references:
        lines.extend(["", "Broken source references:"])
        lines.extend(f"  {ref.file}: {ref.path}" for ref in result.broken_references)

    if result.coverage_issues:
        lines.extend(["", "Coverage target issues:"])
        for issue in result.coverage_issues:
            detail = f" ({issue.detail})" if issue.detail else ""
            lines.append(f"  {issue.cycle}: {issue.kind} {issue.path}{detail}")

    index = result.model_index_mismatches
    if index is not None and (index.imported_but_missing or index.existing_but_not_imported):
        lines.extend(["", "Model index mismatches:"])
        lines.extend(f"  - imported but missing: {name}" for name in index.imported_but_missing)
        lines.extend(f"  - not imported: {name}" for name in index.existing_but_not_imported)

    if result.check_errors:
        lines.extend(["", "Check failures:"])
        lines.extend(f"  - {error}" for error in result.check_errors)

    lines.append("")
    if result.issue_count:
        lines.append(f"{result.issue_count} issue(s) found")
    else:
        lines.append("No issues found")
    return "\n".join(lines)


def format_diagram_run(run: DiagramRun) -> str:
    if not run.diagrams:
        return "No diagrams found"
    lines = [f"Extracted {len(run.diagrams)} diagram(s):"]
    for diagram in run.diagrams:
        lines.append(f"  - [{diagram.kind.value}] {diagram.title}")
    if run.written:
        lines.append("")
        lines.append(f"Wrote {len(run.written)} file(s) to {_relativize(run.output_dir or run.written[0].parent)}")
    return "\n".join(lines)


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
