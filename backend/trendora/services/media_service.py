# Overview: Validates hosted image references and releases them on the image host.

from __future__ import annotations

import hashlib
import json
import re
import time

import requests
from flask import current_app

from ..validation import ValidationError


CLOUDINARY_URL_RE = re.compile(r"^https://res\.cloudinary\.com/[a-zA-Z0-9-]+/image/upload/v\d+/.+$")
DESTROY_URL = "https://api.cloudinary.com/v1_1/{cloud}/image/destroy"
REQUEST_TIMEOUT_SECONDS = 10


def is_valid_image_url(url) -> bool:
    return isinstance(url, str) and bool(CLOUDINARY_URL_RE.match(url))


def extract_public_id(url: str) -> str:
    """
    .../image/upload/v1712345678/products/shoe-red.jpg -> "shoe-red"
    """
    last_segment = url.rstrip("/").rsplit("/", 1)[-1]
    return last_segment.rsplit(".", 1)[0] if "." in last_segment else last_segment


def image_ref(url) -> dict:
    if not is_valid_image_url(url):
        raise ValidationError(f"Invalid image URL: {url}")
    return {"public_id": extract_public_id(url), "url": url}


def normalize_images(value, *, limit: int | None = None) -> list[dict]:
    """
    Accepts a list of URLs, a list of {"url": ...} objects, or the JSON string
    form of either. Returns [{"public_id", "url"}] in input order.
    """
    if value is None or value == "":
        return []
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith("["):
            try:
                value = json.loads(stripped)
            except ValueError:
                raise ValidationError("Invalid images format: must be a JSON array")
        else:
            value = [stripped]
    if not isinstance(value, list):
        raise ValidationError("images must be a list")

    refs = []
    for entry in value:
        url = entry.get("url") if isinstance(entry, dict) else entry
        refs.append(image_ref(url))

    if limit is not None and len(refs) > limit:
        raise ValidationError(f"A product can have at most {limit} images")
    return refs


def _signature(params: dict, api_secret: str) -> str:
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


def release_images(public_ids) -> int:
    """
    Best-effort destroy of hosted images. Returns how many were released.

    No-op without Cloudinary credentials. Failures are logged, never raised.
    """
    ids = [pid for pid in (public_ids or []) if pid]
    if not ids:
        return 0

    cfg = current_app.config
    cloud = cfg.get("CLOUDINARY_CLOUD_NAME")
    api_key = cfg.get("CLOUDINARY_API_KEY")
    api_secret = cfg.get("CLOUDINARY_API_SECRET")
    if not (cloud and api_key and api_secret):
        current_app.logger.info("Image host not configured; kept %d image(s)", len(ids))
        return 0

    released = 0
    for public_id in ids:
        params = {"public_id": public_id, "timestamp": int(time.time())}
        data = {**params, "api_key": api_key, "signature": _signature(params, api_secret)}
        try:
            resp = requests.post(
                DESTROY_URL.format(cloud=cloud), data=data, timeout=REQUEST_TIMEOUT_SECONDS
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            current_app.logger.warning("Failed to release image %s: %s", public_id, exc)
            continue
        released += 1
    return released
