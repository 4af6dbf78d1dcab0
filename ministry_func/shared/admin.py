"""Authenticated admin API: login plus sermon, prayer-log and blog management."""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence
from urllib.parse import unquote

from .config import AdminIdentity
from .logging_utils import get_json_logger
from .moderation import ModerationGate
from .posts import PostService, post_payload
from .sermons import SermonCache
from .tokens import AuthError, TokenClaims, TokenCodec, bearer_token
from .validators import NotFoundError, require_fields

ADMIN_PATH_PREFIX = ("api", "admin")


@dataclass
class AdminResponse:
    status: int
    payload: Any = None


def _same(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def split_path(path: str) -> List[str]:
    segments = [unquote(s) for s in (path or "").split("/") if s]
    if tuple(segments[:2]) == ADMIN_PATH_PREFIX:
        segments = segments[2:]
    return segments


class AdminRouter:
    """Dispatches admin requests; every route except ``login`` needs a bearer token."""

    def __init__(
        self,
        codec: TokenCodec,
        identities: Sequence[AdminIdentity],
        sermons: SermonCache,
        prayers: ModerationGate,
        posts: PostService,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if len(identities) != 2 or {i.role for i in identities} != {"super", "site"}:
            raise ValueError("Exactly one 'super' and one 'site' admin identity are required")
        self.codec = codec
        self.identities = list(identities)
        self.sermons = sermons
        self.prayers = prayers
        self.posts = posts
        self._clock = clock
        self._logger = get_json_logger("ministry.admin")

    # --- authentication -------------------------------------------------------

    def login(self, username: str, password: str) -> str:
        matched: Optional[AdminIdentity] = None
        for identity in self.identities:
            # Evaluate both comparisons for every identity
            user_ok = _same(username, identity.username)
            pass_ok = _same(password, identity.password)
            if user_ok and pass_ok:
                matched = identity
        if matched is None:
            self._logger.warning("Admin login rejected", extra={"event": "admin_login_failed"})
            raise AuthError("Invalid credentials")

        self._logger.info("Admin login", extra={"event": "admin_login_ok", "role": matched.role})
        return self.codec.issue(matched.username, matched.role)

    def authenticate(self, authorization: Optional[str]) -> TokenClaims:
        claims = self.codec.verify(bearer_token(authorization))
        if claims is None:
            raise AuthError()
        return claims

    # --- dispatch -------------------------------------------------------------

    def dispatch(
        self,
        method: str,
        path: str,
        authorization: Optional[str] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> AdminResponse:
        method = (method or "").upper()
        segments = split_path(path)

        if segments == ["login"]:
            if method != "POST":
                raise NotFoundError("Admin route not found")
            creds = require_fields(body or {}, ("username", "password"), "Missing username or password")
            return AdminResponse(200, {"token": self.login(creds["username"], creds["password"])})

        claims = self.authenticate(authorization)
        self._logger.info(
            "Admin request",
            extra={"event": "admin_request", "method": method, "path": "/".join(segments), "role": claims.role},
        )

        if not segments:
            raise NotFoundError("Admin route not found")
        resource, rest = segments[0], segments[1:]
        if resource == "sermons":
            return self._sermons(method, rest, claims)
        if resource == "prayers":
            return self._prayers(method, rest)
        if resource == "posts":
            return self._posts(method, rest, body or {})
        if resource == "generate" and method == "POST" and not rest:
            return self._posts(method, ["generate"], body or {})
        raise NotFoundError("Admin route not found")

    @staticmethod
    def _target_id(rest: List[str]) -> Optional[str]:
        # Accept both ``<resource>/<id>`` and the older ``<resource>/delete/<id>``
        if len(rest) == 1:
            return rest[0]
        if len(rest) == 2 and rest[0] == "delete":
            return rest[1]
        return None

    def _sermons(self, method: str, rest: List[str], claims: TokenClaims) -> AdminResponse:
        now = self._clock() if self._clock else None
        if method == "GET" and not rest:
            return AdminResponse(200, [item.to_dict() for item in self.sermons.list_items()])
        if method == "POST" and rest == ["generate"]:
            return AdminResponse(201, self.sermons.force_generate(now).to_dict())
        if method == "DELETE" and not rest:
            if claims.role != "super":
                raise AuthError()
            return AdminResponse(200, {"deleted": self.sermons.delete_all()})

        target = self._target_id(rest)
        if target and method == "DELETE":
            self.sermons.delete(target)
            return AdminResponse(204)
        raise NotFoundError("Admin route not found")

    def _prayers(self, method: str, rest: List[str]) -> AdminResponse:
        if method == "GET" and not rest:
            return AdminResponse(200, self.prayers.list_logs())

        target = self._target_id(rest)
        if target and method == "DELETE":
            self.prayers.delete_log(target)
            return AdminResponse(204)
        raise NotFoundError("Admin route not found")

    def _posts(self, method: str, rest: List[str], body: Dict[str, Any]) -> AdminResponse:
        if method == "GET" and not rest:
            return AdminResponse(200, {"posts": [post_payload(p) for p in self.posts.list_posts()]})
        if method == "POST" and not rest:
            post = self.posts.create_post(
                body.get("title"),
                body.get("body"),
                tags=body.get("tags"),
                image_key=body.get("imageKey"),
                slug=body.get("slug"),
            )
            return AdminResponse(201, {"ok": True, "post": post_payload(post)})
        if method == "POST" and rest == ["generate"]:
            post = self.posts.generate_post(body.get("category") or "General")
            return AdminResponse(201, {"ok": True, "post": post_payload(post)})

        target = self._target_id(rest)
        if target and method == "DELETE":
            self.posts.delete_post(target)
            return AdminResponse(204)
        raise NotFoundError("Admin route not found")
