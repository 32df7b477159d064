"""
Alias manifest sources

A manifest is a JSON document listing ``{"alias": ..., "node": ...}`` pairs,
either as a bare list or under an ``"aliases"`` key. A malformed document is
rejected as a whole; nothing from it is reconciled.
"""

import json
import re
from pathlib import Path

import aiofiles
import aiohttp
from pydantic import BaseModel, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..dns.types import AliasEntry
from ..errors import UpstreamError, ValidationError
from ..logger import logger

_LABEL_RE = re.compile(r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$")


class ManifestEntry(BaseModel):
    alias: str
    node: str

    @field_validator("alias", "node")
    @classmethod
    def _must_be_dns_label(cls, value: str) -> str:
        value = value.strip().lower()
        if not _LABEL_RE.match(value):
            raise ValueError(f"{value!r} is not a valid DNS label")
        return value


class ManifestDocument(BaseModel):
    aliases: list[ManifestEntry]


_manifest_adapter = TypeAdapter(list[ManifestEntry] | ManifestDocument)


def parse_manifest(document: str | bytes) -> list[AliasEntry]:
    """
    Parse a manifest document.

    Raises:
        ValidationError: not JSON, wrong shape, invalid labels or duplicate aliases
    """
    try:
        data = json.loads(document)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError(f"Manifest is not valid JSON: {e}", field="manifest") from e

    try:
        parsed = _manifest_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Manifest is malformed: {e}", field="manifest") from e

    entries = parsed.aliases if isinstance(parsed, ManifestDocument) else parsed

    aliases = []
    seen = set()
    for entry in entries:
        if entry.alias in seen:
            raise ValidationError(
                f"Alias {entry.alias!r} appears more than once in manifest",
                field="alias",
                alias=entry.alias,
            )
        seen.add(entry.alias)
        aliases.append(AliasEntry(alias=entry.alias, node=entry.node))
    return aliases


class ManifestSource:
    """
    abstract class for a manifest source
    """

    def default_ref(self) -> str | None:
        return None

    async def fetch(self, ref: str | None = None) -> list[AliasEntry]:
        """
        Fetch and parse the manifest at ``ref`` (the configured default when None).

        Raises:
            ValidationError: malformed manifest
            UpstreamError: manifest could not be retrieved
        """
        raise NotImplementedError


class HTTPManifestSource(ManifestSource):
    def __init__(self, url: str | None = None, timeout: int = 10) -> None:
        self._url = url
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    def default_ref(self) -> str | None:
        return self._url

    async def fetch(self, ref: str | None = None) -> list[AliasEntry]:
        url = ref or self._url
        if not url:
            raise ValidationError("No manifest URL configured", field="manifest")

        logger.info(f"Fetching alias manifest from {url}")
        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        raise UpstreamError(
                            f"Manifest fetch returned HTTP {response.status}",
                            manifest=url,
                        )
                    body = await response.read()
        except (aiohttp.ClientError, TimeoutError) as e:
            raise UpstreamError(f"Failed to fetch manifest: {e}", manifest=url) from e

        return parse_manifest(body)


class FileManifestSource(ManifestSource):
    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path else None

    def default_ref(self) -> str | None:
        return str(self._path) if self._path else None

    async def fetch(self, ref: str | None = None) -> list[AliasEntry]:
        path = Path(ref) if ref else self._path
        if path is None:
            raise ValidationError("No manifest path configured", field="manifest")

        try:
            async with aiofiles.open(path, "rb") as f:
                body = await f.read()
        except OSError as e:
            raise UpstreamError(f"Failed to read manifest: {e}", manifest=str(path)) from e

        return parse_manifest(body)
