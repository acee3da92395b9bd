"""Modrinth registry client over the v2 REST API."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import httpx

from mcpack.exceptions import RegistryError
from mcpack.schemas.registry import Project, Version

if TYPE_CHECKING:
    from pathlib import Path

    from mcpack.config import Settings

logger = logging.getLogger(__name__)

MRPACK_CONTENT_TYPE = "application/x-modrinth-modpack+zip"

ICON_CONTENT_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "bmp": "image/bmp",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "svgz": "image/svg+xml",
    "rgb": "image/rgb",
}


class ModrinthClient:
    """Client for the parts of the Modrinth API the pack tools use."""

    def __init__(
        self,
        api_url: str,
        user_agent: str,
        token: str = "",
        *,
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"User-Agent": user_agent}
        if token:
            headers["Authorization"] = token
        self.api_url = api_url.rstrip("/")
        self.client = httpx.Client(
            base_url=self.api_url,
            headers=headers,
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.BaseTransport | None = None
    ) -> ModrinthClient:
        return cls(
            settings.modrinth_api_url,
            settings.user_agent,
            settings.modrinth_token,
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> ModrinthClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = self.client.request(method, url, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            detail = exc.response.text[:200]
            raise RegistryError(
                f"API error {status} for {method} {url}: {detail}", status_code=status
            ) from exc
        except httpx.HTTPError as exc:
            raise RegistryError(f"Network error for {method} {url}: {exc}") from exc
        logger.debug("%s %s -> %d", method, url, resp.status_code)
        return resp

    def get_project(self, project_id: str) -> Project:
        resp = self._request("GET", f"/project/{project_id}")
        return Project.model_validate(resp.json())

    def get_version(self, version_id: str) -> Version:
        resp = self._request("GET", f"/version/{version_id}")
        return Version.model_validate(resp.json())

    def list_versions(
        self,
        project_id: str,
        *,
        game_version: str | None = None,
        loader: str | None = None,
    ) -> list[Version]:
        """List a project's versions, newest first, optionally filtered."""
        params: dict[str, str] = {}
        if game_version:
            params["game_versions"] = json.dumps([game_version])
        if loader:
            params["loaders"] = json.dumps([loader])
        resp = self._request("GET", f"/project/{project_id}/version", params=params)
        return [Version.model_validate(item) for item in resp.json()]

    def latest_version(
        self, project_id: str, game_version: str | None = None, loader: str | None = "fabric"
    ) -> Version | None:
        """Return the newest version matching the filters, or None."""
        versions = self.list_versions(project_id, game_version=game_version, loader=loader)
        return versions[0] if versions else None

    def download(self, url: str, dest: Path) -> None:
        """Stream a file to ``dest``; a partial file is removed on failure."""
        try:
            with self.client.stream("GET", url) as resp:
                resp.raise_for_status()
                with open(dest, "wb") as f:
                    for chunk in resp.iter_bytes():
                        f.write(chunk)
        except httpx.HTTPStatusError as exc:
            dest.unlink(missing_ok=True)
            status = exc.response.status_code
            raise RegistryError(f"Download failed ({status}): {url}", status_code=status) from exc
        except (httpx.HTTPError, OSError) as exc:
            dest.unlink(missing_ok=True)
            raise RegistryError(f"Download failed: {url}: {exc}") from exc

    def _multipart(
        self, url: str, data: dict[str, Any], file_path: Path, file_part: str = "file"
    ) -> dict[str, Any]:
        with open(file_path, "rb") as f:
            resp = self._request(
                "POST",
                url,
                data={"data": json.dumps(data)},
                files={file_part: (file_path.name, f, MRPACK_CONTENT_TYPE)},
            )
        result: dict[str, Any] = resp.json()
        return result

    def create_version(self, version_data: dict[str, Any], file_path: Path) -> Version:
        """Upload ``file_path`` as a new version (``POST /version``)."""
        return Version.model_validate(self._multipart("/version", version_data, file_path))

    def create_project(self, project_data: dict[str, Any], file_path: Path) -> Project:
        """Create a project with an initial version file (``POST /project``)."""
        return Project.model_validate(self._multipart("/project", project_data, file_path))

    def modify_project(self, project_id: str, fields: dict[str, Any]) -> None:
        """Patch project metadata (``PATCH /project/{id}``)."""
        self._request("PATCH", f"/project/{project_id}", json=fields)

    def set_project_icon(self, project_id: str, icon_path: Path) -> None:
        """Replace the project icon with the raw bytes of ``icon_path``."""
        ext = icon_path.suffix.lstrip(".").lower()
        self._request(
            "PATCH",
            f"/project/{project_id}/icon",
            params={"ext": ext},
            content=icon_path.read_bytes(),
            headers={"Content-Type": ICON_CONTENT_TYPES.get(ext, "image/png")},
        )
