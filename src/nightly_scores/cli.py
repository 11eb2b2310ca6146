"""Command-line interface for the nightly scores run and the scrape push."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from nightly_scores.config_loader import Settings
from nightly_scores.notify import OutboxNotifier
from nightly_scores.persistence import SnapshotStore
from nightly_scores.pipeline import RunInProgressError, run_nightly


PUSH_URL_ENV = "NIGHTLY_SCORES_PUSH_URL"


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Resolve athletes' most recent game stats")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Resolve every configured athlete via the provider API")
    run.add_argument("--settings", type=Path, default=None, help="Path to settings JSON")
    run.add_argument("--output", type=Path, default=None, help="Also write the CSV report here")
    run.add_argument("--outbox", type=Path, default=None, help="Directory receiving the report message")
    run.add_argument("--db", type=Path, default=Path("nightly_scores.sqlite"), help="Snapshot database path")
    run.add_argument("--workers", type=int, default=1, help="Athletes resolved in parallel")

    scrape = subparsers.add_parser("scrape", help="Scrape one player page and print the result as JSON")
    scrape.add_argument("slug", help="Player page slug")
    scrape.add_argument("player_id", help="Player page id")
    scrape.add_argument("--timezone", default="America/New_York", help="Time zone for the recency window")

    push = subparsers.add_parser("scrape-push", help="Scrape configured athletes and push rows to the webhook")
    push.add_argument("--settings", type=Path, default=None, help="Path to settings JSON")
    push.add_argument("--push-url", default=None, help=f"Webhook URL (default ${PUSH_URL_ENV})")

    serve = subparsers.add_parser("serve", help="Serve the push webhook")
    serve.add_argument("--settings", type=Path, default=None, help="Path to settings JSON")
    serve.add_argument("--db", type=Path, default=Path("nightly_scores.sqlite"), help="Snapshot database path")
    serve.add_argument("--outbox", type=Path, default=None, help="Directory receiving report messages")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser.parse_args(argv)


def _run(args: argparse.Namespace) -> int:
    settings = Settings.load(args.settings)
    notifier = OutboxNotifier(args.outbox) if args.outbox else None
    store = SnapshotStore(args.db)
    try:
        result = run_nightly(
            settings,
            notifier=notifier,
            store=store,
            workers=max(1, args.workers),
        )
    except RunInProgressError as exc:
        print(f"Run skipped: {exc}", file=sys.stderr)
        return 2

    if result.report is None:
        print("Nothing to report")
        return 0
    if args.output:
        args.output.write_bytes(result.report)
        print(f"Wrote report to {args.output}")
    print(f"Resolved {len(result.batch.rows)} athlete(s); {len(result.batch.errors)} error(s)")
    return 0


def _scrape(args: argparse.Namespace) -> int:
    from nightly_scores.scrape import scrape_player

    result = scrape_player(args.slug, args.player_id, tz=args.timezone)
    print(json.dumps(result.to_dict(), default=str))
    return 0 if result.ok else 1


def _scrape_push(args: argparse.Namespace) -> int:
    from nightly_scores.scrape import FlashscoreScraper, PushError, build_push_payload, push_rows

    settings = Settings.load(args.settings)
    url = args.push_url or os.getenv(PUSH_URL_ENV, "")
    if not url or not settings.push_secret:
        print(f"Missing push URL or push secret (set {PUSH_URL_ENV})", file=sys.stderr)
        return 1

    with FlashscoreScraper(tz=settings.timezone) as scraper:
        results = scraper.scrape_many(settings.players)
    payload = build_push_payload(results)
    try:
        response = push_rows(url, settings.push_secret, payload)
    except PushError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    print(f"Push OK: {json.dumps(response)}")
    return 0


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    from nightly_scores.api import create_app

    settings = Settings.load(args.settings)
    app = create_app(
        settings,
        store=SnapshotStore(args.db),
        notifier=OutboxNotifier(args.outbox) if args.outbox else None,
    )
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    handlers = {
        "run": _run,
        "scrape": _scrape,
        "scrape-push": _scrape_push,
        "serve": _serve,
    }
    return handlers[args.command](args)


if __name__ == "__main__":
    raise SystemExit(main())
