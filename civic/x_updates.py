"""
Mirror of recent X posts matching the platform hashtag.

A sync cycle fetches a bounded batch from the X recent-search API, stores
posts whose external id is not yet known and trims the table back to the
retention limit. Cycles run from the background scheduler, the standalone
daemon in ``scripts/`` or an admin refresh request.
"""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

import requests

from civic.db import DbClient, DuplicateRecordError, XUpdateRecord

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30  # seconds
DEFAULT_QUERY = "#AbiaState -is:retweet"
DEFAULT_RETENTION_LIMIT = 1000
UNKNOWN_AUTHOR = "Unknown"


@dataclass(frozen=True)
class XPost:
    post_id: str
    content: str
    author: str
    posted_at: datetime


class PostSource(Protocol):
    """Anything that can produce a batch of recent posts."""

    def fetch_recent(self) -> list[XPost]:
        ...


@dataclass
class InMemoryPostSource:
    """Static post source for tests/dev."""

    posts: list[XPost] = field(default_factory=list)

    def fetch_recent(self) -> list[XPost]:
        return list(self.posts)


def _parse_timestamp(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_search_response(payload: dict) -> list[XPost]:
    """Convert a recent-search response body into posts."""
    users = (payload.get("includes") or {}).get("users") or []
    usernames = {user["id"]: user.get("username") for user in users if "id" in user}
    posts: list[XPost] = []
    for tweet in payload.get("data") or []:
        try:
            posts.append(
                XPost(
                    post_id=str(tweet["id"]),
                    content=tweet.get("text", ""),
                    author=usernames.get(tweet.get("author_id")) or UNKNOWN_AUTHOR,
                    posted_at=_parse_timestamp(tweet.get("created_at")),
                )
            )
        except (KeyError, ValueError) as exc:
            logger.warning("Skipping malformed post %r: %s", tweet.get("id"), exc)
    return posts


@dataclass
class XApiClient:
    """Client for the X v2 recent search endpoint."""

    api_key: str
    api_url: str = "https://api.twitter.com/2/tweets/search/recent"
    query: str = DEFAULT_QUERY
    max_results: int = 10
    max_pages: int = 1

    def _request_page(self, next_token: Optional[str] = None) -> dict:
        params = {
            "query": self.query,
            "tweet.fields": "id,text,author_id,created_at",
            "user.fields": "username",
            "expansions": "author_id",
            "max_results": self.max_results,
        }
        if next_token:
            params["next_token"] = next_token
        response = requests.get(
            self.api_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            params=params,
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        return response.json()

    def fetch_recent(self) -> list[XPost]:
        """
        Fetch up to ``max_pages`` pages. A failure on a follow-up page keeps
        the posts already collected; a failure on the first page propagates.
        """
        posts: list[XPost] = []
        next_token = None
        for page in range(self.max_pages):
            try:
                payload = self._request_page(next_token)
            except (requests.RequestException, ValueError) as exc:
                if not posts:
                    raise
                logger.warning(
                    "Error fetching X page %d, keeping %d posts: %s",
                    page + 1,
                    len(posts),
                    exc,
                )
                break
            posts.extend(parse_search_response(payload))
            next_token = (payload.get("meta") or {}).get("next_token")
            if not next_token:
                break
        return posts


class XUpdateSyncService:
    """Fetch, deduplicate, store and prune mirrored posts."""

    def __init__(
        self,
        db: DbClient,
        source: PostSource,
        retention_limit: int = DEFAULT_RETENTION_LIMIT,
    ):
        self.db = db
        self.source = source
        self.retention_limit = retention_limit

    def fetch_batch(self) -> list[XPost]:
        try:
            return self.source.fetch_recent()
        except Exception as exc:
            logger.error("Error fetching from X API: %s", exc)
            return []

    def store_post(self, post: XPost) -> Optional[XUpdateRecord]:
        """Insert ``post`` unless its external id is already stored."""
        if self.db.get_x_update_by_post_id(post.post_id):
            return None
        try:
            return self.db.create_x_update(
                post_id=post.post_id,
                content=post.content,
                author=post.author,
                posted_at=post.posted_at,
            )
        except DuplicateRecordError:
            # Another cycle inserted it between our check and insert.
            logger.info("X update %s already stored, skipping", post.post_id)
            return None

    def run_cycle(self) -> list[XUpdateRecord]:
        """Run one sync cycle and return the newly stored posts."""
        posts = self.fetch_batch()
        new_updates: list[XUpdateRecord] = []
        for post in posts:
            try:
                record = self.store_post(post)
            except Exception:
                logger.exception("Error saving update %s", post.post_id)
                continue
            if record:
                new_updates.append(record)

        pruned = self.db.prune_x_updates(self.retention_limit)
        logger.info(
            "Processed %d updates, %d new updates stored, %d pruned",
            len(posts),
            len(new_updates),
            pruned,
        )
        return new_updates


def run_loop(
    service: XUpdateSyncService,
    *,
    interval_seconds: float,
    jitter_seconds: float = 0.0,
    stop_event: Optional[threading.Event] = None,
    delay_first: bool = False,
    once: bool = False,
) -> None:
    """
    Run sync cycles until ``stop_event`` is set. A failed cycle is logged and
    the loop carries on.
    """
    stop_event = stop_event or threading.Event()
    if delay_first and stop_event.wait(interval_seconds):
        return
    while not stop_event.is_set():
        try:
            logger.info("Fetching X updates...")
            new_updates = service.run_cycle()
            logger.info("X updates fetched successfully (%d new)", len(new_updates))
        except Exception as exc:
            logger.exception("Error fetching X updates: %s", exc)

        if once:
            return

        sleep_for = interval_seconds + random.uniform(0, jitter_seconds)
        logger.debug("Sleeping for %.1fs", sleep_for)
        stop_event.wait(sleep_for)


class SyncScheduler:
    """Runs ``run_loop`` on a daemon thread for the lifetime of the app."""

    def __init__(self, service: XUpdateSyncService, interval_seconds: float):
        self.service = service
        self.interval_seconds = interval_seconds
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=run_loop,
            args=(self.service,),
            kwargs={
                "interval_seconds": self.interval_seconds,
                "stop_event": self._stop_event,
                "delay_first": True,
            },
            name="x-updates-sync",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "X updates sync scheduled every %.0fs", self.interval_seconds
        )

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None
