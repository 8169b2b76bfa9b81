"""
Kheticulture CLI - job lifecycle commands for farmers and workers.

Usage:
    kheticulture --as FARMER post TITLE --wage W [--workers N] [--location L]
    kheticulture list [--owner ID] [--status S] [--json]
    kheticulture show JOB_ID [--json]
    kheticulture --as WORKER apply JOB_ID
    kheticulture --as FARMER accept APPLICATION_ID
    kheticulture --as FARMER reject APPLICATION_ID
    kheticulture --as FARMER edit-wage JOB_ID AMOUNT
    kheticulture --as FARMER edit-workers JOB_ID COUNT
    kheticulture --as FARMER edit-status JOB_ID STATUS
    kheticulture --as FARMER delete JOB_ID
    kheticulture applications [--job ID] [--worker ID] [--json]
    kheticulture history JOB_ID [--json]
    kheticulture recompute
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from kheticulture.cli.helpers import positive_amount, positive_int, print_json, validate_input
from kheticulture.config import Settings
from kheticulture.jobs import (
    Application,
    Job,
    JobService,
    JobServiceError,
    JobStatus,
    NotFoundError,
    SQLiteJobStorage,
    UnauthorizedError,
)
from kheticulture.logging_config import setup_kheticulture_logging

logger = logging.getLogger(__name__)


def _format_job(job: Job) -> str:
    return (
        f"{job.id}  [{job.status.value}]  {job.title}  "
        f"wage={job.wage:g}/{job.duration_type.value[:-1]}  "
        f"workers={job.accepted_count}/{job.required_workers}"
    )


def _format_application(app: Application) -> str:
    line = f"{app.id}  job={app.job_id}  worker={app.worker_id}  [{app.status.value}]"
    if app.rejected_at:
        line += f"  rejected_at={app.rejected_at.isoformat()}"
    return line


def _require_actor(args) -> str:
    if not args.actor:
        raise UnauthorizedError("This command needs --as ACTOR_ID")
    return validate_input(args.actor, "actor_id", 100)


def cmd_post(args, service: JobService):
    """Post a new job."""
    job = service.create_job(
        owner_id=_require_actor(args),
        owner_name=validate_input(args.owner_name or "", "owner name", 200),
        title=validate_input(args.title, "title", 200),
        description=validate_input(args.description or "", "description", 5000),
        location=validate_input(args.location or "", "location", 200),
        wage=args.wage,
        required_workers=args.workers,
        duration=args.duration,
        duration_type=args.duration_type,
        preferred_date=args.date,
    )
    if args.json:
        print_json(job.to_dict())
    else:
        print(f"✓ Job posted: {job.id}")


def cmd_list(args, service: JobService):
    """List jobs after repairing their statuses."""
    jobs = service.list_jobs(owner_id=args.owner, status=args.status)
    if args.json:
        print_json([j.to_dict() for j in jobs])
        return
    if not jobs:
        print("No jobs found.")
    for job in jobs:
        print(_format_job(job))


def cmd_show(args, service: JobService):
    """Show one job with its applications."""
    service.recompute_all_statuses()
    job = service.get_job(args.job_id)
    applications = service.list_applications(job_id=job.id)
    if args.json:
        data = job.to_dict()
        data["applications"] = [a.to_dict() for a in applications]
        print_json(data)
        return
    print(_format_job(job))
    if job.location:
        print(f"  Location: {job.location}")
    if job.description:
        print(f"  {job.description}")
    print(f"  Applications: {len(applications)}")
    for app in applications:
        print(f"    {_format_application(app)}")


def cmd_apply(args, service: JobService):
    app = service.apply(args.job_id, _require_actor(args))
    print(f"✓ Applied: {app.id}")


def cmd_accept(args, service: JobService):
    job, app = service.accept(args.application_id, _require_actor(args))
    print(f"✓ Accepted {app.worker_id} ({job.accepted_count}/{job.required_workers}, {job.status.value})")


def cmd_reject(args, service: JobService):
    app = service.reject(args.application_id, _require_actor(args))
    print(f"✓ Rejected {app.worker_id}")


def cmd_edit_wage(args, service: JobService):
    job = service.edit_wage(args.job_id, _require_actor(args), args.amount)
    print(f"✓ Wage: {job.wage:g}")


def cmd_edit_workers(args, service: JobService):
    job = service.edit_required_workers(args.job_id, _require_actor(args), args.count)
    print(f"✓ Required workers: {job.required_workers} ({job.status.value})")


def cmd_edit_status(args, service: JobService):
    job = service.edit_status(args.job_id, _require_actor(args), args.status)
    print(f"✓ Status: {job.status.value}")


def cmd_delete(args, service: JobService):
    removed = service.delete_job(args.job_id, _require_actor(args))
    print(f"✓ Job deleted ({removed} applications removed)")


def cmd_applications(args, service: JobService):
    applications = service.list_applications(job_id=args.job, worker_id=args.worker)
    if args.json:
        print_json([a.to_dict() for a in applications])
        return
    if not applications:
        print("No applications found.")
    for app in applications:
        line = _format_application(app)
        if app.is_rejected:
            wait = service.reapply_status(app.job_id, app.worker_id).message
            if wait:
                line += f"  ({wait})"
        print(line)


def cmd_history(args, service: JobService):
    transitions = service.get_job_history(args.job_id)
    if args.json:
        print_json([t.to_dict() for t in transitions])
        return
    for t in transitions:
        when = t.created_at.isoformat() if t.created_at else "-"
        print(f"{when}  {t.from_status or '-'} -> {t.to_status}  by {t.actor_id}  {t.reason or ''}")


def cmd_recompute(args, service: JobService):
    jobs = service.recompute_all_statuses()
    removed = service.purge_orphan_applications()
    print(f"✓ Recomputed {len(jobs)} jobs ({removed} orphaned applications removed)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kheticulture",
        description="Job lifecycle and application matching for farm work",
    )
    parser.add_argument("--as", dest="actor", help="Acting farmer or worker ID", default=None)
    parser.add_argument("--db", type=Path, help="SQLite database path", default=None)

    subparsers = parser.add_subparsers(dest="command", required=True)

    # post
    p_post = subparsers.add_parser("post", help="Post a job")
    p_post.add_argument("title", help="Job title")
    p_post.add_argument("--wage", "-w", type=positive_amount, required=True)
    p_post.add_argument("--workers", "-n", type=positive_int, default=1, help="Workers needed")
    p_post.add_argument("--description", "-d")
    p_post.add_argument("--location", "-l")
    p_post.add_argument("--owner-name", dest="owner_name")
    p_post.add_argument("--duration", type=positive_int, default=1)
    p_post.add_argument("--duration-type", dest="duration_type", choices=["hours", "days"], default="days")
    p_post.add_argument("--date", help="Preferred start date (YYYY-MM-DD)")
    p_post.add_argument("--json", "-j", action="store_true")

    # list
    p_list = subparsers.add_parser("list", help="List jobs")
    p_list.add_argument("--owner")
    p_list.add_argument("--status", choices=[s.value for s in JobStatus])
    p_list.add_argument("--json", "-j", action="store_true")

    # show
    p_show = subparsers.add_parser("show", help="Show a job and its applications")
    p_show.add_argument("job_id")
    p_show.add_argument("--json", "-j", action="store_true")

    # apply / accept / reject
    p_apply = subparsers.add_parser("apply", help="Apply to a job")
    p_apply.add_argument("job_id")
    p_accept = subparsers.add_parser("accept", help="Accept an application")
    p_accept.add_argument("application_id")
    p_reject = subparsers.add_parser("reject", help="Reject an application")
    p_reject.add_argument("application_id")

    # edits
    p_wage = subparsers.add_parser("edit-wage", help="Change a job's wage")
    p_wage.add_argument("job_id")
    p_wage.add_argument("amount", type=positive_amount)
    p_workers = subparsers.add_parser("edit-workers", help="Change required worker count")
    p_workers.add_argument("job_id")
    p_workers.add_argument("count", type=int)
    p_status = subparsers.add_parser("edit-status", help="Set a job's status")
    p_status.add_argument("job_id")
    p_status.add_argument("status", choices=[s.value for s in JobStatus])

    # delete
    p_delete = subparsers.add_parser("delete", help="Delete a job and its applications")
    p_delete.add_argument("job_id")

    # applications
    p_apps = subparsers.add_parser("applications", help="List applications")
    p_apps.add_argument("--job")
    p_apps.add_argument("--worker")
    p_apps.add_argument("--json", "-j", action="store_true")

    # history
    p_history = subparsers.add_parser("history", help="Show a job's status history")
    p_history.add_argument("job_id")
    p_history.add_argument("--json", "-j", action="store_true")

    # recompute
    subparsers.add_parser("recompute", help="Repair every job's status")

    return parser


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings()
    setup_kheticulture_logging(settings.log_level)

    try:
        storage = SQLiteJobStorage(args.db or settings.database_path)
    except JobServiceError as e:
        logger.error(f"Failed to open storage: {e}")
        print(f"error [{e.code.value}]: {e.message}", file=sys.stderr)
        sys.exit(1)
    service = JobService(storage, settings=settings)

    # Dispatch with error handling
    try:
        if args.command == "post":
            cmd_post(args, service)
        elif args.command == "list":
            cmd_list(args, service)
        elif args.command == "show":
            cmd_show(args, service)
        elif args.command == "apply":
            cmd_apply(args, service)
        elif args.command == "accept":
            cmd_accept(args, service)
        elif args.command == "reject":
            cmd_reject(args, service)
        elif args.command == "edit-wage":
            cmd_edit_wage(args, service)
        elif args.command == "edit-workers":
            cmd_edit_workers(args, service)
        elif args.command == "edit-status":
            cmd_edit_status(args, service)
        elif args.command == "delete":
            cmd_delete(args, service)
        elif args.command == "applications":
            cmd_applications(args, service)
        elif args.command == "history":
            cmd_history(args, service)
        elif args.command == "recompute":
            cmd_recompute(args, service)
    except NotFoundError as e:
        print(f"error [{e.code.value}]: {e.message}", file=sys.stderr)
        sys.exit(2)
    except JobServiceError as e:
        print(f"error [{e.code.value}]: {e.message}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        storage.close()


if __name__ == "__main__":
    main()
