#!/usr/bin/env python3
# Biller CLI
# argparse. One synchronous spend run per invocation; scheduling lives elsewhere.

import argparse
import json
import logging
import os
import signal
import sys
from datetime import datetime, timezone

from biller import Biller, RunContext
from errors import BillerError, CancellationError
from store import get_store

log = logging.getLogger("biller")

RUN_TIMEOUT_SEC = float(os.environ.get("BILLER_RUN_TIMEOUT_SEC", "0"))


def _parse_time(value):
    """ISO date or datetime; naive values are UTC."""
    try:
        dt = datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO date/datetime: {value!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def cmd_run(args):
    """Compute and persist period spend for every billing account."""
    run_ctx = RunContext(timeout=args.timeout or None)

    def _signal_handler(signum, frame):
        log.info("Received %s, cancelling spend run", signal.Signals(signum).name)
        run_ctx.cancel()

    prev_term = signal.signal(signal.SIGTERM, _signal_handler)
    prev_int = signal.signal(signal.SIGINT, _signal_handler)

    biller = Biller(get_store())
    try:
        results = biller.run(run_ctx, args.start, args.end)
    except CancellationError as e:
        log.error("spend run cancelled: %s", e)
        sys.exit(2)
    except BillerError as e:
        log.error("spend run failed: %s", e)
        sys.exit(1)
    finally:
        signal.signal(signal.SIGTERM, prev_term)
        signal.signal(signal.SIGINT, prev_int)

    if args.json:
        print(json.dumps([r.to_dict() for r in results], indent=2))
        return
    if not results:
        print("No billing accounts.")
        return
    for r in results:
        print(f"  {r.billing_account_id} | {len(r.projects)} projects | spend {r.spend}")


def cmd_spend(args):
    """Show the stored rollup of one entity for a period."""
    record = get_store().find_spend_for_time_range(
        None, args.level, args.id, args.start, args.end
    )
    if record is None:
        print(f"No {args.level} spend for {args.id}.", file=sys.stderr)
        sys.exit(1)
    print(f"  {record.entity_id} | {record.start_time.isoformat()} -> "
          f"{record.end_time.isoformat()} | spend {record.spend}")


def cmd_history(args):
    """Show a project's rollup history, newest first."""
    history = get_store().get_project_spend_history(None, args.project_id)
    if not history:
        print("No spend history.")
        return
    for record in history:
        print(f"  {record.start_time.isoformat()} -> {record.end_time.isoformat()} | spend {record.spend}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="biller",
        description="Biller: period spend rollups for compute orders",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    # biller run
    p_run = sub.add_parser("run", help="Compute and persist period spend")
    p_run.add_argument("--start", type=_parse_time, default=None,
                       help="Period start (ISO); default: first instant of this month")
    p_run.add_argument("--end", type=_parse_time, default=None,
                       help="Period end, exclusive (ISO); default: first instant of next month")
    p_run.add_argument("--timeout", type=float, default=RUN_TIMEOUT_SEC,
                       help="Abort the run after this many seconds (0 = no deadline)")
    p_run.add_argument("--json", action="store_true", help="Print the spend trees as JSON")
    p_run.set_defaults(func=cmd_run)

    # biller spend <level> <id>
    p_spend = sub.add_parser("spend", help="Show a stored spend rollup")
    p_spend.add_argument("level", choices=["account", "project", "order"], help="Rollup level")
    p_spend.add_argument("id", help="Billing account, project or order ID")
    p_spend.add_argument("--start", type=_parse_time, required=True, help="Period start (ISO)")
    p_spend.add_argument("--end", type=_parse_time, required=True, help="Period end (ISO)")
    p_spend.set_defaults(func=cmd_spend)

    # biller history <project_id>
    p_hist = sub.add_parser("history", help="Project spend history")
    p_hist.add_argument("project_id", help="Project ID")
    p_hist.set_defaults(func=cmd_history)

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(asctime)s] %(levelname)-8s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.command == "run" and (args.start is None) != (args.end is None):
        parser.error("--start and --end must be given together")
    if getattr(args, "start", None) and args.start >= args.end:
        parser.error("--start must be before --end")
    if args.command == "spend" and args.level == "account":
        args.level = "billing_account"

    args.func(args)


if __name__ == "__main__":
    main()
