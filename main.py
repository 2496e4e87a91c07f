#!/usr/bin/env python3
"""PhaseSmith - phased code generation with autonomous error correction.

Usage:
    python main.py run --idea "habit tracker with streaks"               # full six-phase run
    python main.py run --idea "..." --output ./out --max-corrections 5   # custom output and budget
    python main.py run --idea "..." --dry-run                            # show the plan only
    python main.py phases                                                # list the default phases
    python main.py correct src/page.tsx --write                          # correct a single file
"""

import argparse
import sys

from agents.corrector import ErrorCorrectionEngine
from config.defaults import DEFAULTS
from config.phases import default_phases
from core.orchestrator import run_pipeline
from utils.folder_naming import get_output_dir
from utils.log import configure_logging
from utils.sink import DirectorySink


def _print_progress(phase_name, status, message):
    marker = {"running": "..", "retrying": "!!", "completed": "ok", "failed": "XX"}.get(status, "  ")
    print(f"  [{marker}] {phase_name}: {message}")


def _print_summary(outcome, output_dir):
    m = outcome.metrics
    print(f"\nSession:  {outcome.session_id}")
    print(f"Status:   {outcome.status}")
    print(f"Output:   {output_dir}")
    print(f"Phases:   {m.completed_phases} completed, {m.failed_phases} failed")
    print(f"Files:    {m.files}")
    print(f"Lines:    {m.lines}")
    print(f"Tests:    {m.tests} (coverage {m.coverage:.0f}%)")
    print(f"Fixes:    {m.fixes_applied}")
    print(f"Duration: {m.duration:.1f}s")
    if outcome.error:
        print(f"\nError: {outcome.error}")


def cmd_run(args):
    """Run the phase pipeline for an idea."""
    output_dir = args.output or get_output_dir(args.idea)
    phases = default_phases()

    if args.dry_run:
        print(f"Idea:   {args.idea}")
        print(f"Output: {output_dir}")
        print("\nPhases:")
        for phase in phases:
            print(f"  {phase.index}. {phase.name}")
            for output in phase.outputs:
                print(f"       -> {output}")
        return 0

    context = {"idea": args.idea}
    if args.feature:
        context["features"] = args.feature

    config = {}
    if args.max_corrections is not None:
        config["max_correction_iterations"] = args.max_corrections

    outcome = run_pipeline(
        phases,
        context,
        sink=DirectorySink(output_dir),
        config=config,
        on_progress=_print_progress,
    )
    _print_summary(outcome, output_dir)

    if args.verbose:
        for result in outcome.results:
            print(f"\n--- Phase {result.phase_index}: {result.phase_name} [{result.status}] ---")
            for warning in result.warnings:
                print(f"  [WARN] {warning}")
            if result.error:
                print(f"  [ERROR] {result.error}")

    return 0 if outcome.status == "completed" else 1


def cmd_phases(args):
    for phase in default_phases():
        deps = ", ".join(phase.dependencies) or "-"
        print(f"{phase.index}. {phase.name} ({phase.kind})")
        print(f"   {phase.description}")
        print(f"   depends on: {deps}")


def cmd_correct(args):
    """Run the correction engine over one file."""
    with open(args.file) as f:
        text = f.read()

    engine = ErrorCorrectionEngine()
    result = engine.correct_code(text, max_iterations=args.max_iterations)

    print(f"Issues found:     {len(result.original_issues)}")
    for issue in result.original_issues:
        print(f"  - {issue}")
    print(f"Fixes applied:    {len(result.applied_fixes)} in {result.iterations_used} iteration(s)")
    for fix in result.applied_fixes:
        print(f"  + {fix}")
    if result.remaining_issues:
        print(f"Remaining issues: {len(result.remaining_issues)}")
        for issue in result.remaining_issues:
            print(f"  ! {issue}")

    if args.write and result.final_text != text:
        with open(args.file, "w") as f:
            f.write(result.final_text)
        print(f"\nWrote {args.file}")
    return 0 if result.success else 1


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="phasesmith",
        description="Phased code generation with autonomous error correction",
    )
    parser.add_argument("--log-level", default=DEFAULTS["log_level"],
                        help="Logging level (default: %(default)s)")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run the phase pipeline")
    run_parser.add_argument("--idea", required=True, help="Application idea in plain language")
    run_parser.add_argument("--feature", action="append",
                            help="Feature to include (repeatable)")
    run_parser.add_argument("--output", help="Output directory (default: generated/<slug>)")
    run_parser.add_argument("--max-corrections", type=int,
                            help=f"Correction iterations per artifact (default: {DEFAULTS['max_correction_iterations']})")
    run_parser.add_argument("--verbose", action="store_true",
                            help="Show per-phase warnings and errors")
    run_parser.add_argument("--dry-run", action="store_true",
                            help="Show the phase plan without generating")

    subparsers.add_parser("phases", help="List the default phases")

    correct_parser = subparsers.add_parser("correct", help="Auto-correct a single source file")
    correct_parser.add_argument("file", help="File to correct")
    correct_parser.add_argument("--max-iterations", type=int,
                                default=DEFAULTS["max_correction_iterations"],
                                help="Correction iteration budget (default: %(default)s)")
    correct_parser.add_argument("--write", action="store_true",
                                help="Write the corrected text back to the file")

    args = parser.parse_args(argv)
    level = "DEBUG" if getattr(args, "verbose", False) else args.log_level
    configure_logging(level)

    if args.command == "run":
        return cmd_run(args)
    if args.command == "phases":
        return cmd_phases(args) or 0
    if args.command == "correct":
        return cmd_correct(args)
    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
