"""Pinmark: save bookmarks to Pinboard, queueing them while offline."""
from __future__ import annotations

import argparse
import asyncio
import json
import signal
import sys
from typing import List, Optional

from core.logging_utils import enable_console_logging
from datetime_utils import format_unix
from helpers.bookmark_input import SubmissionValidationError, parse_tags
from services.app_commands import AppCommands
from services.credentials import CredentialError
from services.notifications import ITEM_FAILED, ITEM_SENT
from services.pinboard_errors import PinboardError
from services.submission_queue import QueueEntry
from services.submission_service import SubmitStatus
from storage.config import AppConfig, load_config
from storage.db import init_db


def build_commands(config: AppConfig) -> AppCommands:
    init_db()
    return AppCommands(
        worker_batch_size=config.clamped_batch_size(),
        worker_tick_interval=config.worker_tick_interval_sec,
    )


def _print_entries(entries: List[QueueEntry]) -> None:
    if not entries:
        print("Queue is empty.")
        return
    for entry in entries:
        sub = entry.submission
        print(
            f"#{entry.id} [{entry.status}] {sub.url}  attempts={entry.attempt_count}  "
            f"next={format_unix(entry.next_attempt_at)}"
        )
        if entry.last_error:
            print(f"    last error: {entry.last_error}")


async def _run_worker(commands: AppCommands) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            pass
    commands.notifier.subscribe(ITEM_SENT, lambda entry_id: print(f"sent #{entry_id}"))
    commands.notifier.subscribe(ITEM_FAILED, lambda entry_id: print(f"failed #{entry_id}"))
    await commands.worker.run(stop)


async def _dispatch(args: argparse.Namespace, commands: AppCommands, config: AppConfig) -> int:

    if args.command == "status":
        session = await commands.init_session()
        print(
            json.dumps(
                {
                    "credentialConfigured": session.credential_configured,
                    "queueStats": session.queue_stats.to_dict(),
                }
            )
        )
    elif args.command == "login":
        commands.save_credential(args.token)
        print("Pinboard token saved.")
    elif args.command == "logout":
        commands.clear_credential()
        print("Pinboard token removed.")
    elif args.command == "add":
        result = await commands.submit_bookmark(
            args.url,
            title=args.title,
            notes=args.notes,
            tags=parse_tags(" ".join(args.tags or [])),
            private=args.private if args.private is not None else config.default_private,
            read_later=args.read_later if args.read_later is not None else config.default_read_later,
            intent="update" if args.update else "create",
            merge_existing_tags=args.merge_tags,
        )
        print(result.message)
        return 2 if result.status is SubmitStatus.REJECTED else 0
    elif args.command == "queue":
        entries = await (commands.queue_failed() if args.failed else commands.queue_list())
        _print_entries(entries)
    elif args.command == "retry":
        outcome = await commands.queue_retry_now()
        print(f"Sent {outcome.sent}; {outcome.remaining} still pending.")
    elif args.command == "suggest":
        suggestions = await commands.fetch_tag_suggestions(args.url)
        print("recommended: " + " ".join(suggestions.recommended))
        print("popular: " + " ".join(suggestions.popular))
    elif args.command == "tags":
        print("\n".join(await commands.fetch_user_tags()))
    elif args.command == "check":
        duplicate = await commands.check_duplicate(args.url)
        if duplicate.bookmark is None:
            print("Not bookmarked yet.")
        else:
            existing = duplicate.bookmark
            print(f"Already saved {existing.time}: {existing.title}")
            print("tags: " + " ".join(existing.tags))
    elif args.command == "worker":
        await _run_worker(commands)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pinmark", description=__doc__ or "")
    parser.add_argument("-v", "--verbose", action="store_true", help="Echo log output to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Show credential state and queue counters")

    login = sub.add_parser("login", help="Store the Pinboard API token")
    login.add_argument("token", help="Token in username:TOKEN form")

    sub.add_parser("logout", help="Forget the stored Pinboard token")

    add = sub.add_parser("add", help="Save a bookmark (queued if Pinboard is unreachable)")
    add.add_argument("url")
    add.add_argument("-t", "--title", default="")
    add.add_argument("-n", "--notes", default="")
    add.add_argument("--tags", nargs="*", default=[])
    add.add_argument("--private", dest="private", action="store_true", default=None)
    add.add_argument("--public", dest="private", action="store_false")
    add.add_argument("--read-later", dest="read_later", action="store_true", default=None)
    add.add_argument("--update", action="store_true", help="Overwrite an existing bookmark")
    add.add_argument("--merge-tags", action="store_true", help="Keep tags already saved on Pinboard")

    queue = sub.add_parser("queue", help="List queued bookmarks")
    queue.add_argument("--failed", action="store_true", help="Show permanently failed entries")

    sub.add_parser("retry", help="Retry every queued bookmark now")

    suggest = sub.add_parser("suggest", help="Tag suggestions for a URL")
    suggest.add_argument("url")

    sub.add_parser("tags", help="List your Pinboard tags")

    check = sub.add_parser("check", help="Check whether a URL is already bookmarked")
    check.add_argument("url")

    sub.add_parser("worker", help="Run the background retry loop until interrupted")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.verbose:
        enable_console_logging()

    config = load_config()
    commands = build_commands(config)

    async def _run() -> int:
        try:
            return await _dispatch(args, commands, config)
        finally:
            await commands.aclose()

    try:
        return asyncio.run(_run())
    except (SubmissionValidationError, CredentialError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except PinboardError as exc:
        print(f"error: {exc.message_for_user()}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
