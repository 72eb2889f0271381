"""
Vault Mirror

Copies saved thoughts and sources as markdown files with YAML
frontmatter into a GitHub repository, for browsing in a notes app.
Mirroring runs in the background and never affects the outcome of the
operation that triggered it.
"""
import asyncio
import base64
import logging
import re
from typing import Iterable, List, Optional, Set

import httpx
import yaml

from ..config import settings
from ..schemas.thought import ThoughtRecord, SourceRecord
from ..tracer import trace_result

logger = logging.getLogger(__name__)


class VaultError(Exception):
    """Writing to the vault repository failed."""
    pass


def slugify(text: str, max_length: int = 50) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug[:max_length].rstrip("-") or "untitled"


def _frontmatter(data: dict) -> str:
    return "---\n" + yaml.safe_dump(data, sort_keys=False, allow_unicode=True) + "---\n"


def _section(title: str, items: List[str]) -> str:
    if not items:
        return ""
    lines = "\n".join(f"- {item}" for item in items)
    return f"\n## {title}\n\n{lines}\n"


def thought_path(thought: ThoughtRecord) -> str:
    date = thought.created_at.strftime("%Y-%m-%d")
    return f"thoughts/{thought.kind.value}/{date}-{slugify(thought.claim)}.md"


def source_path(source: SourceRecord) -> str:
    date = source.captured_at.strftime("%Y-%m-%d")
    return f"sources/{source.type.value}/{date}-{source.id[:8]}.md"


def render_thought(thought: ThoughtRecord, source_ids: Iterable[str] = ()) -> str:
    """Markdown document for a thought."""
    meta = {
        "id": thought.id,
        "kind": thought.kind.value,
        "domain": thought.domain.value,
        "stance": thought.stance.value,
        "confidence": thought.confidence,
        "privacy": thought.privacy.value,
        "tags": list(thought.tags),
        "sources": list(source_ids),
        "created": thought.created_at.isoformat(),
    }
    if thought.supersedes_id:
        meta["supersedes"] = thought.supersedes_id

    body = f"\n# {thought.claim}\n"
    if thought.context:
        body += f"\n## Context\n\n{thought.context}\n"
    body += _section("Evidence", thought.evidence)
    body += _section("Examples", thought.examples)
    body += _section("Actionables", thought.actionables)
    return _frontmatter(meta) + body


def render_source(source: SourceRecord, thought_ids: Iterable[str] = ()) -> str:
    """Markdown document for a source."""
    meta = {
        "id": source.id,
        "type": source.type.value,
        "title": source.title,
        "captured": source.captured_at.isoformat(),
        "thoughts": list(thought_ids),
    }
    if source.url:
        meta["url"] = source.url

    title = source.title or f"{source.type.value.title()} source"
    return _frontmatter(meta) + f"\n# {title}\n\n{source.raw}\n"


class VaultMirror:
    """
    Writes markdown files through the GitHub contents API.

    Disabled (every export is a no-op) unless both a token and a
    repository are configured.
    """

    API_URL = "https://api.github.com"

    def __init__(
        self,
        token: Optional[str],
        repo: Optional[str],
        branch: str = "main",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.token = token
        self.repo = repo
        self.branch = branch
        self._client = client or httpx.AsyncClient(base_url=self.API_URL, timeout=30.0)
        self._tasks: Set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls) -> "VaultMirror":
        return cls(
            token=settings.vault_github_token,
            repo=settings.vault_github_repo,
            branch=settings.vault_branch,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.token) and "/" in (self.repo or "")

    @property
    def _headers(self) -> dict:
        return {
            "Authorization": f"token {self.token}",
            "Accept": "application/vnd.github+json",
        }

    async def commit_file(self, path: str, content: str, message: str) -> None:
        """Create or update one file on the configured branch."""
        url = f"/repos/{self.repo}/contents/{path}"
        try:
            existing = await self._client.get(url, headers=self._headers, params={"ref": self.branch})
            sha = existing.json().get("sha") if existing.status_code == 200 else None

            payload = {
                "message": message,
                "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
                "branch": self.branch,
            }
            if sha:
                payload["sha"] = sha

            response = await self._client.put(url, headers=self._headers, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise VaultError(f"GitHub returned {e.response.status_code} for {path}") from e
        except httpx.HTTPError as e:
            raise VaultError(f"Could not reach GitHub for {path}: {e}") from e

    async def export(self, source: Optional[SourceRecord], thoughts: List[ThoughtRecord]) -> int:
        """Write the source and its thoughts. Returns the number of files written."""
        if not self.enabled:
            return 0

        source_ids = [source.id] if source else []
        written = 0
        if source is not None:
            await self.commit_file(
                source_path(source),
                render_source(source, [t.id for t in thoughts]),
                f"Add source: {source.title or source.id}",
            )
            written += 1

        for thought in thoughts:
            await self.commit_file(
                thought_path(thought),
                render_thought(thought, source_ids),
                f"Add {thought.kind.value}: {thought.claim[:60]}",
            )
            written += 1
        return written

    async def _export_logged(self, source: Optional[SourceRecord], thoughts: List[ThoughtRecord]) -> None:
        try:
            written = await self.export(source, thoughts)
            trace_result("vault", "export", True, f"{written} files")
        except Exception as e:
            logger.error(f"Vault mirror failed: {e}")
            trace_result("vault", "export", False, str(e))

    def export_in_background(
        self,
        source: Optional[SourceRecord],
        thoughts: List[ThoughtRecord],
    ) -> Optional[asyncio.Task]:
        """Schedule an export without waiting for it."""
        if not self.enabled:
            return None
        task = asyncio.get_running_loop().create_task(self._export_logged(source, list(thoughts)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await self._client.aclose()
