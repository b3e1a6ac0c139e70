from __future__ import annotations

import argparse
import asyncio
import logging

from smartmarks.client.channel import ChangeChannel
from smartmarks.client.config import ClientSettings
from smartmarks.client.http import build_http_client
from smartmarks.client.identity import IdentityClient
from smartmarks.client.store import BookmarkStoreClient
from smartmarks.client.synchronizer import BookmarkSynchronizer
from smartmarks.services.common import display_host


def render(sync: BookmarkSynchronizer) -> str:
    lines = []
    if sync.last_notice:
        marker = "!" if sync.last_notice.is_error else "*"
        lines.append(f"{marker} {sync.last_notice.text}")
    if sync.loading:
        lines.append("Loading bookmarks...")
    elif not sync.collection:
        lines.append("No bookmarks yet.")
    for item in sync.collection:
        host = display_host(item.url) or "link"
        pending = " (deleting...)" if item.id == sync.pending_mutation_id else ""
        lines.append(f"{item.id}  {item.title}  {item.url}  [{host}]{pending}")
    lines.append(f"{len(sync.collection)} total")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    defaults = ClientSettings()
    p = argparse.ArgumentParser(
        prog="smartmarks-client",
        description=(
            "Work with your Smartmarks bookmarks from a terminal. Get a token from "
            "/api/v1/auth/session while signed in to the web app."
        ),
    )
    p.add_argument("--server", default=defaults.server_url)
    p.add_argument("--token", default=defaults.token)
    p.add_argument("-v", "--verbose", action="store_true")
    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="print your bookmarks")
    add = sub.add_parser("add", help="add a bookmark")
    add.add_argument("title")
    add.add_argument("url")
    rm = sub.add_parser("rm", help="delete a bookmark by id")
    rm.add_argument("bookmark_id")
    sub.add_parser("watch", help="keep the list open and follow live changes")
    return p


async def run(args: argparse.Namespace) -> int:
    settings = ClientSettings(server_url=args.server, token=args.token)
    if not settings.token:
        print("A session token is required (--token or SMARTMARKS_TOKEN).")
        return 2

    async with build_http_client(settings) as http:
        identity = IdentityClient(
            http, token=settings.token, refresh_margin=settings.session_refresh_margin
        )
        try:
            if not await identity.ensure_session():
                print("Session expired or revoked; sign in again to get a new token.")
                return 1

            channel = None
            if args.command == "watch":
                channel = ChangeChannel(
                    http,
                    topic=f"bookmarks:{identity.user_id}",
                    wait=settings.channel_wait,
                    retry_delay=settings.channel_retry,
                )
            sync = BookmarkSynchronizer(
                BookmarkStoreClient(http, identity),
                identity,
                channel=channel,
                owner_id=identity.user_id,
                notice_ttl=settings.notice_ttl,
            )
            async with sync:
                if args.command == "add":
                    ok = await sync.add(args.title, args.url) is not None
                elif args.command == "rm":
                    ok = await sync.remove(args.bookmark_id)
                elif args.command == "watch":
                    identity.start_auto_refresh()
                    sync.add_listener(lambda s: print(render(s) + "\n", flush=True))
                    print(render(sync) + "\n", flush=True)
                    await asyncio.Event().wait()
                    ok = True
                else:
                    ok = sync.last_error is None
                print(render(sync))
                return 0 if ok else 1
        finally:
            await identity.close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130
