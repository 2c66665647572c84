# Overview: Role-based route authorization loaded from a CSV policy file, reloadable over redis.

"""
Policy Engine

Policy file format (one rule per line, '#' comments):

    p, <role>, <resource>, <action>     grant role the action on resource
    g, <user_uuid>, <role>              give a user an extra role

'*' in resource or action matches anything.

CONCURRENCY:
- Rules live in an immutable PolicySnapshot; reload() builds a new one and
  swaps the reference under a lock, so readers never see a half-loaded set
- The redis watcher thread calls reload() whenever a message arrives on the
  policy channel; publish_reload() is how one instance tells the others
- A dropped redis connection is logged and the watcher subscribes again
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

import redis
from flask import current_app

logger = logging.getLogger(__name__)

WILDCARD = "*"


@dataclass(frozen=True)
class PolicySnapshot:
    rules: frozenset = field(default_factory=frozenset)
    groups: dict = field(default_factory=dict)

    def roles_for(self, role: str | None, user_uuid: str | None) -> set[str]:
        roles = {role} if role else set()
        if user_uuid:
            roles.update(self.groups.get(user_uuid, ()))
        return roles

    def allows(self, roles: set[str], resource: str, action: str) -> bool:
        for rule_role, rule_resource, rule_action in self.rules:
            if rule_role not in roles:
                continue
            if rule_resource not in (WILDCARD, resource):
                continue
            if rule_action in (WILDCARD, action):
                return True
        return False


def parse_policy(text: str) -> PolicySnapshot:
    rules = set()
    groups: dict[str, set[str]] = {}
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        parts = [p.strip() for p in line.split(",")]
        kind, args = parts[0], parts[1:]
        if kind == "p" and len(args) == 3:
            rules.add(tuple(args))
        elif kind == "g" and len(args) == 2:
            groups.setdefault(args[0], set()).add(args[1])
        else:
            logger.warning("Skipping invalid policy line %d: %s", lineno, line)
    return PolicySnapshot(
        rules=frozenset(rules),
        groups={user: frozenset(roles) for user, roles in groups.items()},
    )


class PolicyEnforcer:
    def __init__(self, path: str | None = None, text: str | None = None):
        self.path = path
        self._lock = threading.Lock()
        self._snapshot = parse_policy(text) if text is not None else PolicySnapshot()
        self._watcher: threading.Thread | None = None
        self._stop = threading.Event()
        if path and text is None:
            self.reload()

    @property
    def snapshot(self) -> PolicySnapshot:
        return self._snapshot

    def reload(self) -> int:
        """Re-read the policy file and swap in the new rules; returns the rule count."""
        with open(self.path, encoding="utf-8") as fh:
            snapshot = parse_policy(fh.read())
        with self._lock:
            self._snapshot = snapshot
        logger.info("Policy reloaded from %s (%d rules)", self.path, len(snapshot.rules))
        return len(snapshot.rules)

    def enforce(self, role: str | None, user_uuid: str | None, resource: str, action: str) -> bool:
        snapshot = self._snapshot
        return snapshot.allows(snapshot.roles_for(role, user_uuid), resource, action)

    # -------------------------------------------------------------------------
    # Redis watcher
    # -------------------------------------------------------------------------

    def _reload_logged(self) -> None:
        try:
            self.reload()
        except OSError:
            logger.exception("Policy reload failed")

    def start_watcher(
        self,
        redis_client,
        channel: str,
        poll_seconds: float = 1.0,
        retry_seconds: float = 5.0,
    ) -> threading.Thread:
        """
        Reload on every message published to `channel`.

        A dropped redis connection does not end the thread: it waits
        retry_seconds, subscribes again and reloads once, since reload
        requests sent while disconnected are lost.
        """
        pubsub = redis_client.pubsub(ignore_subscribe_messages=True)
        pubsub.subscribe(channel)
        self._stop.clear()

        def _listen():
            current = pubsub
            try:
                while not self._stop.is_set():
                    try:
                        if current is None:
                            current = redis_client.pubsub(ignore_subscribe_messages=True)
                            current.subscribe(channel)
                            logger.info("Policy watcher resubscribed to %s", channel)
                            self._reload_logged()
                        message = current.get_message(timeout=poll_seconds)
                    except redis.RedisError:
                        logger.warning(
                            "Policy watcher lost %s; resubscribing in %.1fs", channel, retry_seconds,
                            exc_info=True,
                        )
                        if current is not None:
                            current.close()
                        current = None
                        self._stop.wait(retry_seconds)
                        continue
                    if message is not None:
                        self._reload_logged()
            finally:
                if current is not None:
                    current.close()

        self._watcher = threading.Thread(target=_listen, name="policy-watcher", daemon=True)
        self._watcher.start()
        logger.info("Policy watcher subscribed to %s", channel)
        return self._watcher

    def stop_watcher(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._watcher is not None:
            self._watcher.join(timeout)
            self._watcher = None


def publish_reload(redis_client, channel: str) -> int:
    """Ask every subscribed instance to reload; returns the receiver count."""
    return redis_client.publish(channel, "reload")


def redis_client_from_config(config):
    host, _, port = config["REDIS_ADDR"].partition(":")
    return redis.Redis(
        host=host or "localhost",
        port=int(port or 6379),
        password=config.get("REDIS_PASSWORD"),
        db=config.get("REDIS_DB", 0),
    )


def init_policy(app) -> PolicyEnforcer:
    enforcer = PolicyEnforcer(app.config["POLICY_FILE"])
    app.extensions["policy_enforcer"] = enforcer
    if app.config.get("POLICY_WATCHER_ENABLED"):
        enforcer.start_watcher(redis_client_from_config(app.config), app.config["POLICY_CHANNEL"])
    return enforcer


def get_enforcer() -> PolicyEnforcer:
    return current_app.extensions["policy_enforcer"]
