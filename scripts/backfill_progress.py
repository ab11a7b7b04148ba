#!/usr/bin/env python3
"""
Create progress rows missing after an interrupted task fan-out.

Usage:
    python3 scripts/backfill_progress.py --task-id 12
    python3 scripts/backfill_progress.py --teacher-id 3 --include-late
    python3 scripts/backfill_progress.py --all

The script is idempotent: it only creates rows that are missing.
"""

from __future__ import annotations

import argparse
import logging
import sys

from app import create_app
from models import Task, db
from services import fanout
from services.errors import EngineError


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Backfill missing progress rows for tasks."
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--task-id", type=int, help="Repair a single task.")
    target.add_argument(
        "--teacher-id", type=int, help="Repair every task of one teacher."
    )
    target.add_argument("--all", action="store_true", help="Repair every task.")
    parser.add_argument(
        "--include-late",
        action="store_true",
        help="Also assign students who enrolled after the task was created.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report what is missing.",
    )
    return parser.parse_args(argv)


def _task_ids(args: argparse.Namespace) -> list[int]:
    if args.task_id is not None:
        return [args.task_id]
    if args.teacher_id is not None:
        return fanout.teacher_task_ids(args.teacher_id)
    return [task_id for (task_id,) in db.session.query(Task.id).order_by(Task.id.asc())]


def _counts(args: argparse.Namespace) -> dict[int, int]:
    if args.dry_run:
        return {
            task_id: len(
                fanout.find_missing(task_id, include_late_enrollees=args.include_late)
            )
            for task_id in _task_ids(args)
        }
    if args.teacher_id is not None:
        return fanout.backfill_teacher(
            args.teacher_id, include_late_enrollees=args.include_late
        )
    return {
        task_id: fanout.backfill_task(task_id, include_late_enrollees=args.include_late)
        for task_id in _task_ids(args)
    }


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    verb = "missing" if args.dry_run else "created"

    app = create_app()
    with app.app_context():
        try:
            counts = _counts(args)
        except EngineError as exc:
            print(f"Backfill aborted: {exc}", file=sys.stderr)
            return 1

    for task_id, count in counts.items():
        print(f"task {task_id}: {count} {verb}")
    print(
        f"Done. {len(counts)} tasks checked, {sum(counts.values())} progress rows {verb}."
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
