"""Product image hosting on a GitHub repository via the contents API."""

import base64
import logging
from typing import Any

import httpx

from merchant.core.config import Settings, get_settings
from merchant.core.errors import UpstreamError

logger = logging.getLogger(__name__)

UPLOAD_DIR = "public/uploads"


class GitHubImageStore:
    """Uploads image bytes as files of a GitHub repository.

    Each upload is a commit on the configured branch; the returned URL is the
    raw download URL of the new file.
    """

    def __init__(self, token: str, repo: str, branch: str, api_url: str) -> None:
        self.repo = repo
        self.branch = branch
        self.base_url = f"{api_url.rstrip('/')}/repos/{repo}/contents"
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
        }

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "GitHubImageStore":
        settings = settings or get_settings()
        return cls(
            token=settings.github_token,
            repo=settings.github_repo,
            branch=settings.github_branch,
            api_url=settings.github_api_url,
        )

    async def upload(self, content: bytes, filename: str) -> str:
        """Store one file and return its public URL.

        Raises:
            UpstreamError: the host rejected the upload or was unreachable.
        """
        path = f"{UPLOAD_DIR}/{filename}"
        payload: dict[str, Any] = {
            "message": f"Upload {filename}",
            "content": base64.b64encode(content).decode("ascii"),
            "branch": self.branch,
        }

        try:
            async with httpx.AsyncClient(headers=self.headers, timeout=30.0) as client:
                response = await client.put(f"{self.base_url}/{path}", json=payload)
        except httpx.HTTPError as e:
            logger.exception("Error uploading %s to %s", filename, self.repo)
            raise UpstreamError("Failed to upload image") from e

        if not response.is_success:
            logger.error(
                "Image upload rejected: file=%s status=%s body=%s",
                filename,
                response.status_code,
                response.text[:500],
            )
            raise UpstreamError("Failed to upload image")

        url: str = response.json()["content"]["download_url"]
        logger.info("Uploaded image %s", url)
        return url


def get_image_store() -> GitHubImageStore:
    """FastAPI dependency."""
    return GitHubImageStore.from_settings()
