#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys

from app.client import ShoutboxClient, ShoutboxError


async def main() -> int:
    ap = argparse.ArgumentParser(description="Post to or read from a shoutbox")
    ap.add_argument("--url", default=os.getenv("SHOUTBOX_URL", "http://127.0.0.1:3000"))
    ap.add_argument("--key", default=os.getenv("API_KEY", ""), help="defaults to $API_KEY")
    sub = ap.add_subparsers(dest="cmd", required=True)
    post = sub.add_parser("post", help="submit a message")
    post.add_argument("author")
    post.add_argument("message")
    sub.add_parser("list", help="print the current buffer as JSON lines")
    ns = ap.parse_args()

    async with ShoutboxClient(ns.url, ns.key) as client:
        try:
            if ns.cmd == "post":
                await client.post(ns.message, ns.author)
                print("posted")
            else:
                for m in await client.messages():
                    print(json.dumps(m.model_dump(), ensure_ascii=False))
        except ShoutboxError as e:
            print(f"rejected: {e}", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
