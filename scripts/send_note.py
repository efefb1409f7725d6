#!/usr/bin/env python
"""Deliver a signed Create/Note activity to a remote inbox.

Usage:
    uv run python scripts/send_note.py https://mastodon.online/inbox "<p>Hello</p>" \
        --in-reply-to https://mastodon.online/@someone/109266692665758321
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

import httpx

# Add parent to path for fedisign imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from fedisign.auth.errors import DeliveryError, SigningError
from fedisign.client.delivery import deliver, encode_activity
from fedisign.client.signer import RequestSigner
from fedisign.config import get_settings
from fedisign.services.activities import build_create_note
from fedisign.services.identity import ActorIdentity


async def send(args: argparse.Namespace) -> int:
    settings = get_settings()
    identity = ActorIdentity.from_settings(settings)

    activity = build_create_note(
        identity,
        args.content,
        in_reply_to=args.in_reply_to,
        to=args.to or None,
    )
    body = encode_activity(activity)

    if args.verbose:
        print(json.dumps(activity, indent=2), file=sys.stderr)

    try:
        signer = RequestSigner.from_file(
            args.key or settings.private_key_path,
            identity.key_id,
            include_query=settings.include_query_in_request_target,
        )
        response = await deliver(
            signer,
            args.inbox,
            body,
            timeout=args.timeout,
            user_agent=settings.user_agent,
        )
    except SigningError as e:
        print(f"Signing failed, nothing sent: {e}", file=sys.stderr)
        return 1
    except DeliveryError as e:
        print(f"Delivery rejected: {e}", file=sys.stderr)
        return 1
    except httpx.HTTPError as e:
        print(f"Delivery failed: {e}", file=sys.stderr)
        return 1

    print(f"Status code: {response.status_code}")
    if response.text:
        print(response.text)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Send a signed note to a remote inbox")
    parser.add_argument("inbox", help="Remote inbox URL (e.g. https://mastodon.online/inbox)")
    parser.add_argument("content", help="Note content (HTML)")
    parser.add_argument("--in-reply-to", default=None, help="URL of the note being replied to")
    parser.add_argument(
        "--to",
        action="append",
        default=[],
        help="Addressee (repeatable, default: public collection)",
    )
    parser.add_argument(
        "--key", type=Path, default=None, help="Private key PEM (default: configured path)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30,
        help="Request timeout in seconds (default: 30)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Print the activity")
    args = parser.parse_args(argv)

    return asyncio.run(send(args))


if __name__ == "__main__":
    sys.exit(main())
