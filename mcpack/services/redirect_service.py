"""nginx redirect snippet pointing clean paths at the latest pack files."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from mcpack.exceptions import RegistryError
from mcpack.schemas.pack import load_upload_config
from mcpack.services.datetime_service import format_iso, now_utc

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from pathlib import Path

    from mcpack.config import Settings
    from mcpack.services.modrinth_service import ModrinthClient

logger = logging.getLogger(__name__)

REDIRECTS_FILE = "nginx-modpack-redirects.conf"


@dataclass(frozen=True)
class RedirectRule:
    path: str
    url: str
    project_key: str


def path_for_key(project_key: str) -> str:
    """Map a project key to its URL path; the first dash becomes a slash."""
    return "/" + project_key.replace("-", "/", 1)


def latest_download_url(client: ModrinthClient, project_id: str) -> str:
    versions = client.list_versions(project_id)
    if not versions:
        raise RegistryError(f"No versions found for project {project_id}")
    primary = versions[0].primary_file
    if primary is None:
        raise RegistryError(f"Latest version of {project_id} has no files")
    return primary.url


def render_nginx_config(rules: list[RedirectRule], generated_at: datetime) -> str:
    blocks = "\n\n".join(
        f'location {rule.path} {{\n    return 302 "{rule.url}";\n}}' for rule in rules
    )
    return (
        "# Modpack download redirects\n"
        f"# Generated on {format_iso(generated_at)}\n"
        "# Clean URLs for the latest published modpack versions\n\n"
        f"{blocks}\n"
    )


def generate_redirects(
    settings: Settings,
    client: ModrinthClient,
    *,
    output: Path | None = None,
    delay: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> list[RedirectRule]:
    """Resolve each published project's latest file and write the nginx snippet."""
    upload_config = load_upload_config(settings.config_path)
    pause = settings.registry_delay_seconds if delay is None else delay
    rules: list[RedirectRule] = []
    for i, (key, project_id) in enumerate(upload_config.projects.items()):
        if i > 0 and pause > 0:
            sleep(pause)
        logger.info("Resolving latest download for %s", key)
        rules.append(RedirectRule(path_for_key(key), latest_download_url(client, project_id), key))

    target = output or settings.project_dir / REDIRECTS_FILE
    target.write_text(render_nginx_config(rules, now_utc()), encoding="utf-8")
    logger.info("Wrote %d redirects to %s", len(rules), target)
    return rules
