"""Manual CLI — run pipeline steps from the command line.

Usage:
    eventintel enrich <attendee_id>
    eventintel score --name "Ada Lovelace" --email ada@acme.com --title CTO
    eventintel notify <attendee_id> [--force]
    eventintel expenses <event_id> [--user USER] [--start 2025-01-01] [--end 2025-02-01]
    eventintel report <event_id> [--user USER]
"""

import argparse
import json
import sys

from .errors import AttendeeNotFound
from .report import build_event_report
from .services import Services


def build_parser():
    parser = argparse.ArgumentParser(description="Event attendee intelligence pipeline")
    sub = parser.add_subparsers(dest="command", required=True)

    enrich = sub.add_parser("enrich", help="Enrich, score and (if key lead) notify a stored attendee")
    enrich.add_argument("attendee_id")

    score = sub.add_parser("score", help="Dry-run enrichment and scoring for inline data")
    score.add_argument("--name", required=True)
    score.add_argument("--email", required=True)
    score.add_argument("--company")
    score.add_argument("--title")

    notify = sub.add_parser("notify", help="Send the key-lead alert for an attendee")
    notify.add_argument("attendee_id")
    notify.add_argument("--force", action="store_true", help="Ignore the notification cooldown")

    expenses = sub.add_parser("expenses", help="Pull Brex expenses for an event")
    expenses.add_argument("event_id")
    expenses.add_argument("--user", help="Owning user id")
    expenses.add_argument("--start", help="Start date (YYYY-MM-DD)")
    expenses.add_argument("--end", help="End date (YYYY-MM-DD)")

    report = sub.add_parser("report", help="Print the event report")
    report.add_argument("event_id")
    report.add_argument("--user", help="Owning user id")

    return parser


def main(argv=None, services=None):
    args = build_parser().parse_args(argv)
    services = services or Services()

    try:
        if args.command == "enrich":
            result = services.orchestrator.run(args.attendee_id)
        elif args.command == "score":
            result = services.orchestrator.preview(args.name, args.email,
                                                   company=args.company, title=args.title)
        elif args.command == "notify":
            result = services.dispatcher.send(args.attendee_id, force=args.force)
        elif args.command == "expenses":
            result = services.expenses.pull(args.event_id, user_id=args.user,
                                            start_date=args.start, end_date=args.end)
        else:
            result = build_event_report(services.db, args.event_id, args.user)
    except AttendeeNotFound as e:
        print(str(e), file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
