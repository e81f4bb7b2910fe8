"""Payroll cycles command line interface.

Provides operational tools for:
- Creating the schema
- Creating, listing and resetting cycles
- Calculating a cycle
- Printing a cycle summary
- Finalizing a cycle

Usage:
    payroll-cycles init-db
    payroll-cycles create-cycle --start 2024-01-01 --end 2024-01-31
    payroll-cycles calculate CYCLE_ID
    payroll-cycles summary CYCLE_ID [--json]
    payroll-cycles finalize CYCLE_ID --actor USER
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any, TypeVar
from uuid import UUID

from payroll_cycles.config import Settings, get_settings
from payroll_cycles.database import (
    create_engine_for_url,
    create_schema,
    create_session_factory,
    session_scope,
)
from payroll_cycles.errors import PayrollError, ValidationFailedError
from payroll_cycles.logging_config import configure_logging
from payroll_cycles.repository import PayrollRepository
from payroll_cycles.services.cycle_service import CycleService
from payroll_cycles.services.finalization_service import FinalizationService
from payroll_cycles.services.summary import CycleSummary

T = TypeVar("T")


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


def format_summary(summary: CycleSummary) -> str:
    """Plain-text rendering of a cycle summary."""
    totals = summary.totals
    lines = [
        f"{summary.name} ({summary.start_date} to {summary.end_date})",
        f"  Status:     {summary.status}",
        f"  Employees:  {totals.total_employees}",
        f"  Base pay:   {totals.total_base_pay:>15,.2f}",
        f"  Bonus:      {totals.total_bonus:>15,.2f}",
        f"  Deduction:  {totals.total_deduction:>15,.2f}",
        f"  Net pay:    {totals.total_net_pay:>15,.2f}",
        f"  Average:    {totals.average_net_pay:>15,.2f}",
    ]
    if summary.branch_breakdown:
        lines.append("\n  By branch:")
        for branch in summary.branch_breakdown:
            lines.append(
                f"    {branch.branch_name:<24} {branch.employee_count:>4}"
                f"  {branch.total_net_pay:>15,.2f}"
            )
    if summary.issues:
        lines.append(f"\n  {len(summary.issues)} issue(s):")
        for issue in summary.issues:
            who = issue.employee_name or str(issue.employee_id)
            lines.append(f"    - {issue.type.value}: {who}")
    lines.append(f"\n  Can finalize: {'yes' if summary.can_finalize else 'no'}")
    return "\n".join(lines)


class PayrollCli:
    """Payroll cycles command line interface."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="payroll-cycles",
            description="Payroll cycle operations",
        )
        parser.add_argument(
            "--database-url",
            type=str,
            help="Database URL (default: DATABASE_URL from the environment)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        subparsers.add_parser("init-db", help="Create all tables")

        # create-cycle command
        create = subparsers.add_parser("create-cycle", help="Create a payroll cycle")
        create.add_argument("--start", type=parse_date, required=True, help="Start date (YYYY-MM-DD)")
        create.add_argument("--end", type=parse_date, required=True, help="End date (YYYY-MM-DD)")
        create.add_argument("--name", type=str, help="Cycle name (generated when omitted)")
        create.add_argument("--actor", type=str, help="Acting user")

        subparsers.add_parser("list-cycles", help="List payroll cycles")

        # calculate command
        calculate = subparsers.add_parser("calculate", help="Calculate a cycle")
        calculate.add_argument("cycle_id", type=parse_uuid)
        calculate.add_argument("--actor", type=str, help="Acting user")

        # reset command
        reset = subparsers.add_parser("reset", help="Delete all details of an active cycle")
        reset.add_argument("cycle_id", type=parse_uuid)
        reset.add_argument("--actor", type=str, help="Acting user")

        # summary command
        summary = subparsers.add_parser("summary", help="Show a cycle summary")
        summary.add_argument("cycle_id", type=parse_uuid)
        summary.add_argument("--json", action="store_true", help="Print JSON instead of text")

        # finalize command
        finalize = subparsers.add_parser("finalize", help="Finalize a cycle (irreversible)")
        finalize.add_argument("cycle_id", type=parse_uuid)
        finalize.add_argument("--actor", type=str, required=True, help="Acting user")
        finalize.add_argument(
            "--expected-version",
            type=int,
            help="Fail if the cycle version differs",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        configure_logging(self.settings)

        # Dispatch to command handler
        handlers: dict[str, Callable[..., int]] = {
            "init-db": self._cmd_init_db,
            "create-cycle": self._cmd_create_cycle,
            "list-cycles": self._cmd_list_cycles,
            "calculate": self._cmd_calculate,
            "reset": self._cmd_reset,
            "summary": self._cmd_summary,
            "finalize": self._cmd_finalize,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        try:
            return handler(parsed)
        except ValidationFailedError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            for issue in e.issues:
                who = issue.employee_name or str(issue.employee_id)
                print(f"  - {issue.type.value}: {who}", file=sys.stderr)
            return 1
        except PayrollError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1

    def _run_with_repository(
        self,
        args: argparse.Namespace,
        operation: Callable[[PayrollRepository], Awaitable[T]],
    ) -> T:
        """Run ``operation`` in one committed transaction."""

        async def runner() -> T:
            engine = create_engine_for_url(args.database_url or self.settings.database_url)
            try:
                factory = create_session_factory(engine)
                async with session_scope(factory) as session:
                    return await operation(PayrollRepository(session))
            finally:
                await engine.dispose()

        return asyncio.run(runner())

    def _cmd_init_db(self, args: argparse.Namespace) -> int:
        """Create all tables."""

        async def runner() -> None:
            engine = create_engine_for_url(args.database_url or self.settings.database_url)
            try:
                await create_schema(engine)
            finally:
                await engine.dispose()

        asyncio.run(runner())
        print("Schema created.")
        return 0

    def _cmd_create_cycle(self, args: argparse.Namespace) -> int:
        """Create a payroll cycle."""

        async def operation(repository: PayrollRepository) -> Any:
            service = CycleService(repository, self.settings)
            return await service.create_cycle(
                args.start, args.end, name=args.name, actor_id=args.actor
            )

        cycle = self._run_with_repository(args, operation)
        print(f"Created cycle {cycle.cycle_id}: {cycle.name}")
        return 0

    def _cmd_list_cycles(self, args: argparse.Namespace) -> int:
        """List payroll cycles."""

        async def operation(repository: PayrollRepository) -> Any:
            return await CycleService(repository, self.settings).list_cycles()

        cycles = self._run_with_repository(args, operation)
        if not cycles:
            print("No payroll cycles.")
        for cycle in cycles:
            print(
                f"{cycle.cycle_id}  {cycle.start_date} {cycle.end_date}"
                f"  {cycle.status:<9}  {cycle.name}"
            )
        return 0

    def _cmd_calculate(self, args: argparse.Namespace) -> int:
        """Calculate a cycle."""

        async def operation(repository: PayrollRepository) -> Any:
            return await CycleService(repository, self.settings).calculate(
                args.cycle_id, actor_id=args.actor
            )

        result = self._run_with_repository(args, operation)
        print(f"Calculated cycle {args.cycle_id}")
        print(f"  Employees:  {result.total_employees}")
        print(f"  Hours:      {result.total_hours}")
        print(f"  Base pay:   {result.total_base_pay:>15,.2f}")
        print(
            f"  Details:    {result.details_created} new, {result.details_updated} updated,"
            f" {result.details_zeroed} zeroed"
        )
        return 0

    def _cmd_reset(self, args: argparse.Namespace) -> int:
        """Delete all details of a cycle."""

        async def operation(repository: PayrollRepository) -> Any:
            return await CycleService(repository, self.settings).reset(
                args.cycle_id, actor_id=args.actor
            )

        deleted = self._run_with_repository(args, operation)
        print(f"Deleted {deleted} detail(s) from cycle {args.cycle_id}")
        return 0

    def _cmd_summary(self, args: argparse.Namespace) -> int:
        """Print a cycle summary."""

        async def operation(repository: PayrollRepository) -> Any:
            return await CycleService(repository, self.settings).get_summary(args.cycle_id)

        summary = self._run_with_repository(args, operation)
        if args.json:
            print(json.dumps(summary.to_dict(), indent=2))
        else:
            print(format_summary(summary))
        return 0

    def _cmd_finalize(self, args: argparse.Namespace) -> int:
        """Finalize a cycle."""

        async def operation(repository: PayrollRepository) -> Any:
            return await FinalizationService(repository).finalize(
                args.cycle_id, args.actor, expected_version=args.expected_version
            )

        record = self._run_with_repository(args, operation)
        print(f"Finalized cycle {record.cycle_id} by {record.finalized_by}")
        print(f"  Employees:  {record.total_employees}")
        print(f"  Net total:  {record.total_amount:>15,.2f}")
        return 0


def main() -> int:
    """CLI entry point."""
    cli = PayrollCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
