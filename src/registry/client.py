# src/registry/client.py — v1
"""Package registry metadata client (crates.io API).

Plain request/response: latest-version lookup, crate metadata and crate search. Caching of
the latest version lives in the documentation engine.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from dociium.config.settings import Settings
from dociium.core.errors import NotFoundError, ParseDriftError
from dociium.core.models import CrateInfo, CrateSummary, VersionInfo
from dociium.extraction.fetcher import HttpFetcher

logger = logging.getLogger(__name__)


class RegistryClient:
    """Thin client for the registry's JSON API."""

    def __init__(
        self,
        settings: Settings | None = None,
        fetcher: HttpFetcher | None = None,
    ) -> None:
        self._settings = settings or Settings(_env_file=None)  # type: ignore[call-arg]
        self._fetcher = fetcher or HttpFetcher(self._settings)
        self._base = self._settings.registry_base_url

    async def _get(self, url: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            data = await self._fetcher.get_json(url, params)
        except ValueError as e:
            raise ParseDriftError(f"registry returned non-JSON for {url}: {e}") from e
        if not isinstance(data, dict):
            raise ParseDriftError(f"registry returned {type(data).__name__} for {url}")
        return data

    async def resolve_latest_version(self, package: str) -> str:
        """Newest stable version of package, falling back to newest overall."""
        data = await self._get(f"{self._base}/crates/{package}")
        crate = data.get("crate") or {}
        for field in ("max_stable_version", "newest_version", "max_version"):
            value = crate.get(field)
            if isinstance(value, str) and value:
                logger.debug("Latest %s resolved to %s (%s)", package, value, field)
                return value
        raise NotFoundError(f"registry has no published version of {package}")

    async def search_registry(self, query: str, limit: int = 10) -> list[CrateSummary]:
        data = await self._get(
            f"{self._base}/crates", params={"q": query, "per_page": max(1, min(limit, 100))}
        )
        summaries = []
        for item in data.get("crates", [])[:limit]:
            summaries.append(
                CrateSummary(
                    name=item.get("name", ""),
                    max_version=item.get("max_stable_version") or item.get("max_version") or "",
                    description=(item.get("description") or "").strip(),
                    downloads=int(item.get("downloads") or 0),
                    documentation=item.get("documentation"),
                    repository=item.get("repository"),
                )
            )
        return summaries

    async def crate_info(self, package: str) -> CrateInfo:
        """Crate metadata plus every published version, newest first."""
        data = await self._get(f"{self._base}/crates/{package}")
        crate = data.get("crate")
        if not isinstance(crate, dict):
            raise ParseDriftError(f"registry response for {package} has no crate object")

        raw_versions = [v for v in data.get("versions") or [] if isinstance(v, dict) and v.get("num")]
        raw_versions.sort(key=lambda v: version_sort_key(str(v["num"])), reverse=True)
        versions = [
            VersionInfo(
                version=str(v["num"]),
                downloads=int(v.get("downloads") or 0),
                yanked=bool(v.get("yanked", False)),
                created_at=v.get("created_at"),
            )
            for v in raw_versions
        ]
        logger.debug("%s: %d published versions", package, len(versions))

        # license is recorded per version; report the newest one's
        license_ = next((v["license"] for v in raw_versions if v.get("license")), None)
        return CrateInfo(
            name=crate.get("name") or package,
            latest_version=crate.get("max_stable_version") or crate.get("max_version") or "",
            description=(crate.get("description") or "").strip(),
            homepage=crate.get("homepage"),
            repository=crate.get("repository"),
            documentation=crate.get("documentation"),
            license=license_,
            downloads=int(crate.get("downloads") or 0),
            recent_downloads=crate.get("recent_downloads"),
            keywords=_labels(data.get("keywords"), crate.get("keywords"), "keyword"),
            categories=_labels(data.get("categories"), crate.get("categories"), "category"),
            versions=versions,
            created_at=crate.get("created_at"),
            updated_at=crate.get("updated_at"),
        )

    async def aclose(self) -> None:
        await self._fetcher.aclose()


def _labels(expanded: Any, ids: Any, field: str) -> list[str]:
    """Keyword/category names: the expanded objects when present, else the bare ids."""
    if isinstance(expanded, list) and expanded:
        return [str(e.get(field) or e.get("id")) for e in expanded if isinstance(e, dict)]
    if isinstance(ids, list):
        return [str(i) for i in ids]
    return []


_SEMVER = re.compile(r"^(\d+)\.(\d+)\.(\d+)(?:-([0-9A-Za-z.-]+))?(?:\+[0-9A-Za-z.-]+)?$")


def version_sort_key(version: str) -> tuple[Any, ...]:
    """Semver precedence; a prerelease sorts below its release, junk sorts as 0.0.0."""
    m = _SEMVER.match(version.strip())
    if m is None:
        return (0, 0, 0, 0, ())
    major, minor, patch, pre = m.groups()
    if pre is None:
        return (int(major), int(minor), int(patch), 1, ())
    idents = tuple((0, int(p), "") if p.isdigit() else (1, 0, p) for p in pre.split("."))
    return (int(major), int(minor), int(patch), 0, idents)
