from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional

import httpx

from timelines.errors import PublishError


@dataclass(frozen=True)
class PublishConfig:
    url: Optional[str]
    token: Optional[str]
    timeout_s: float


def load_publish_config_from_env() -> PublishConfig:
    try:
        timeout_s = float(os.environ.get("COTWIT_PUBLISH_TIMEOUT_S", "30"))
    except ValueError as e:
        raise RuntimeError(f"Invalid COTWIT_PUBLISH_TIMEOUT_S: {e}") from e
    return PublishConfig(
        url=os.environ.get("COTWIT_PUBLISH_URL", "").strip() or None,
        token=os.environ.get("COTWIT_PUBLISH_TOKEN", "").strip() or None,
        timeout_s=timeout_s,
    )


class Publisher(ABC):
    """Accepts a rendered image plus caption and returns a publication id."""

    @abstractmethod
    async def publish(self, image: bytes, caption: str, day: date) -> str:
        ...


class FilePublisher(Publisher):
    """Writes chart-<date>.png and chart-<date>.txt into a directory."""

    def __init__(self, output_dir: str | Path, suffix: str = "png") -> None:
        self.output_dir = Path(output_dir)
        self.suffix = suffix

    async def publish(self, image: bytes, caption: str, day: date) -> str:
        stem = f"chart-{day.isoformat()}"
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            image_path = self.output_dir / f"{stem}.{self.suffix}"
            image_path.write_bytes(image)
            (self.output_dir / f"{stem}.txt").write_text(caption + "\n", encoding="utf-8")
        except OSError as e:
            raise PublishError(f"could not write {stem} to {self.output_dir}: {e}") from e
        return str(image_path)


class HttpPublisher(Publisher):
    """
    Posts the image and caption as multipart form data to a feed endpoint.

    Expects a 2xx JSON response carrying the new post's id under "id".
    """

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.token = token
        self.timeout_s = timeout_s
        self._transport = transport

    @classmethod
    def from_config(cls, cfg: PublishConfig) -> "HttpPublisher":
        if not cfg.url:
            raise RuntimeError("Missing COTWIT_PUBLISH_URL")
        return cls(cfg.url, token=cfg.token, timeout_s=cfg.timeout_s)

    async def publish(self, image: bytes, caption: str, day: date) -> str:
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        files = {"media": (f"chart-{day.isoformat()}.png", image, "image/png")}
        data = {"status": caption}

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, headers=headers, transport=self._transport) as client:
                resp = await client.post(self.url, data=data, files=files)
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PublishError(f"http_status:{e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise PublishError(f"network:{type(e).__name__}") from e

        try:
            post_id = resp.json()["id"]
        except (ValueError, KeyError, TypeError) as e:
            raise PublishError(f"unexpected response body: {resp.text[:200]}") from e
        return str(post_id)
