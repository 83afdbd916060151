"""
Run one fusion intelligence batch from the CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import uuid

from app.config import get_app_settings
from app.services.intelligence_service import WorkListUnavailableError, run_intelligence_batch


def main() -> int:
    parser = argparse.ArgumentParser(description="Run the fusion intelligence batch.")
    parser.add_argument(
        "--user-id",
        dest="user_id",
        type=uuid.UUID,
        default=None,
        help="Optional user id; defaults to every active user.",
    )
    parser.add_argument(
        "--service",
        dest="services",
        action="append",
        default=None,
        help="Restrict to a service name. May be repeated.",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, get_app_settings().log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    try:
        summary = run_intelligence_batch(user_id=args.user_id, service_names=args.services)
    except WorkListUnavailableError as exc:
        print(json.dumps({"success": False, "error": str(exc)}, indent=2))
        return 2

    print(json.dumps(summary.to_dict(), indent=2, default=str))
    return 0 if summary.failed == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
