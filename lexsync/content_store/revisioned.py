"""Revision-checked remote file stores used as durable content backends.

Both stores expose the same two primitives: read a file together with its
revision token, and write a file only if the caller still holds the current
revision. A stale revision raises ``RevisionConflict`` so the content store
can re-read and retry its read-modify-write.
"""

import base64
from dataclasses import dataclass
from typing import Optional, Protocol
from uuid import uuid4

import httpx
from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError

from lexsync.core.errors import RevisionConflict, StoreUnavailable
from lexsync.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RevisionedFile:
    """File content and the revision it was read at."""

    revision: str
    content: str


class RevisionedFileStore(Protocol):
    """Remote file primitives consumed by ``RevisionedBackend``."""

    async def read_file(self, path: str) -> Optional[RevisionedFile]: ...

    async def write_file(
        self, path: str, content: str, revision: Optional[str] = None
    ) -> str: ...

    async def close(self) -> None: ...


def _decode(value: bytes | str | None) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class RedisFileStore:
    """Files kept as Redis hashes of ``content`` and ``revision``.

    Writes are compare-and-swap: the key is WATCHed, the stored revision is
    compared with the caller's, and the new content is committed in a
    MULTI/EXEC block. A concurrent writer aborts the transaction.
    """

    def __init__(self, redis: Redis, key_prefix: str = "lexsync:content"):
        self._redis = redis
        self.key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, key_prefix: str = "lexsync:content") -> "RedisFileStore":
        """Create a store with its own Redis connection pool."""
        return cls(Redis.from_url(url), key_prefix=key_prefix)

    def _key(self, path: str) -> str:
        return f"{self.key_prefix}:{path}"

    async def read_file(self, path: str) -> Optional[RevisionedFile]:
        try:
            content, revision = await self._redis.hmget(
                self._key(path), ["content", "revision"]
            )
        except RedisError as e:
            raise StoreUnavailable(f"Redis read failed: {e}") from e

        if content is None:
            return None
        return RevisionedFile(
            revision=_decode(revision) or "", content=_decode(content) or ""
        )

    async def write_file(
        self, path: str, content: str, revision: Optional[str] = None
    ) -> str:
        key = self._key(path)
        new_revision = uuid4().hex
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                await pipe.watch(key)
                current = _decode(await pipe.hget(key, "revision"))
                if current != revision:
                    raise RevisionConflict(
                        f"{path}: expected revision {revision}, found {current}"
                    )
                pipe.multi()
                pipe.hset(key, mapping={"content": content, "revision": new_revision})
                await pipe.execute()
        except WatchError as e:
            raise RevisionConflict(f"{path}: modified during write") from e
        except RedisError as e:
            raise StoreUnavailable(f"Redis write failed: {e}") from e

        logger.debug("redis_file_written", path=path, revision=new_revision)
        return new_revision

    async def close(self) -> None:
        await self._redis.aclose()


class GitHubFileStore:
    """Files in a GitHub repository, addressed through the contents API.

    The blob ``sha`` returned by GitHub is the revision token; GitHub rejects
    a write whose ``sha`` is not the file's current one.
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        branch: str = "main",
        api_url: str = "https://api.github.com",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self._client = client or httpx.AsyncClient(
            base_url=api_url,
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )

    def _contents_url(self, path: str) -> str:
        return f"/repos/{self.owner}/{self.repo}/contents/{path.lstrip('/')}"

    async def read_file(self, path: str) -> Optional[RevisionedFile]:
        try:
            response = await self._client.get(
                self._contents_url(path), params={"ref": self.branch}
            )
            if response.status_code == 404:
                return None
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise StoreUnavailable(f"GitHub read of {path} failed: {e}") from e

        data = response.json()
        if isinstance(data, list) or data.get("type") != "file":
            raise StoreUnavailable(f"GitHub path {path} is not a file")

        content = base64.b64decode(data.get("content", "")).decode("utf-8")
        return RevisionedFile(revision=data["sha"], content=content)

    async def write_file(
        self, path: str, content: str, revision: Optional[str] = None
    ) -> str:
        body = {
            "message": f"Update {path}",
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": self.branch,
        }
        if revision:
            body["sha"] = revision

        try:
            response = await self._client.put(self._contents_url(path), json=body)
            # 409: sha mismatch, 422: file exists but no sha was supplied
            if response.status_code in (409, 422):
                raise RevisionConflict(f"{path}: revision {revision} is stale")
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise StoreUnavailable(f"GitHub write of {path} failed: {e}") from e

        new_revision = response.json()["content"]["sha"]
        logger.debug("github_file_written", path=path, revision=new_revision)
        return new_revision

    async def close(self) -> None:
        await self._client.aclose()
