"""
Bridge to the external object store.

The store itself is never talked to with credentials from here: every
read and write goes through a URL signed by the local sidecar service.
Uploads happen client-side with the signed PUT URL; downloads are streamed
back through this service.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterator, Optional, Tuple
from urllib.parse import urlparse

import requests

from config import Config

logger = logging.getLogger(__name__)

STORAGE_HOST_PREFIX = "https://storage.googleapis.com/"
OBJECTS_PREFIX = "/objects/"
CHUNK_SIZE = 64 * 1024


class ObjectStorageError(Exception):
    pass


class ObjectNotFoundError(ObjectStorageError):
    pass


@dataclass
class ObjectFile:
    bucket_name: str
    object_name: str


@dataclass
class ObjectDownload:
    chunks: Iterator[bytes]
    headers: Dict[str, str]
    media_type: str


def parse_object_path(path: str) -> Tuple[str, str]:
    """Split "/<bucket>/<object...>" into (bucket, object)."""
    if not path.startswith("/"):
        path = f"/{path}"
    parts = path.split("/")
    if len(parts) < 3 or not parts[1] or not parts[2]:
        raise ObjectStorageError(f"Invalid path: must contain at least a bucket name: {path}")
    return parts[1], "/".join(parts[2:])


class ObjectStorageService:
    def __init__(self, private_object_dir: Optional[str] = None, sidecar_url: Optional[str] = None,
                 session: Optional[requests.Session] = None, timeout: float = 10):
        self.private_object_dir = Config.PRIVATE_OBJECT_DIR if private_object_dir is None else private_object_dir
        self.sidecar_url = (sidecar_url or Config.OBJECT_STORAGE_SIDECAR_URL).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def get_private_object_dir(self) -> str:
        if not self.private_object_dir:
            raise ObjectStorageError(
                "PRIVATE_OBJECT_DIR not set. Create a bucket and set PRIVATE_OBJECT_DIR to /<bucket>/<prefix>."
            )
        return self.private_object_dir

    def _entity_dir(self) -> str:
        entity_dir = self.get_private_object_dir()
        return entity_dir if entity_dir.endswith("/") else f"{entity_dir}/"

    def sign_object_url(self, bucket_name: str, object_name: str, method: str, ttl_sec: int) -> str:
        payload = {
            "bucket_name": bucket_name,
            "object_name": object_name,
            "method": method,
            "expires_at": (datetime.now(timezone.utc) + timedelta(seconds=ttl_sec)).isoformat(),
        }
        resp = self.session.post(
            f"{self.sidecar_url}/object-storage/signed-object-url",
            json=payload,
            timeout=self.timeout,
        )
        if not resp.ok:
            raise ObjectStorageError(
                f"Failed to sign object URL, errorcode: {resp.status_code}, "
                "make sure you're running with object storage enabled"
            )
        return resp.json()["signed_url"]

    def get_object_entity_upload_url(self) -> str:
        full_path = f"{self.get_private_object_dir().rstrip('/')}/uploads/{uuid.uuid4()}"
        bucket_name, object_name = parse_object_path(full_path)
        return self.sign_object_url(bucket_name, object_name, "PUT", Config.UPLOAD_URL_TTL_SEC)

    def normalize_object_entity_path(self, raw_path: str) -> str:
        """Turn a signed storage URL back into the "/objects/<id>" path served by this API."""
        if not raw_path.startswith(STORAGE_HOST_PREFIX):
            return raw_path
        raw_object_path = urlparse(raw_path).path
        entity_dir = self._entity_dir()
        if not raw_object_path.startswith(entity_dir):
            return raw_object_path
        entity_id = raw_object_path[len(entity_dir):]
        return f"{OBJECTS_PREFIX}{entity_id}"

    def get_object_entity_file(self, object_path: str) -> ObjectFile:
        if not object_path.startswith(OBJECTS_PREFIX):
            raise ObjectNotFoundError(object_path)
        entity_id = object_path[len(OBJECTS_PREFIX):]
        if not entity_id:
            raise ObjectNotFoundError(object_path)
        bucket_name, object_name = parse_object_path(f"{self._entity_dir()}{entity_id}")
        return ObjectFile(bucket_name=bucket_name, object_name=object_name)

    def download_object(self, object_path: str, cache_ttl_sec: Optional[int] = None) -> ObjectDownload:
        obj = self.get_object_entity_file(object_path)
        url = self.sign_object_url(obj.bucket_name, obj.object_name, "GET", Config.UPLOAD_URL_TTL_SEC)
        resp = self.session.get(url, stream=True, timeout=self.timeout)
        if resp.status_code == 404:
            resp.close()
            raise ObjectNotFoundError(object_path)
        if not resp.ok:
            resp.close()
            raise ObjectStorageError(f"Object download failed with status {resp.status_code}")

        ttl = Config.DOWNLOAD_CACHE_TTL_SEC if cache_ttl_sec is None else cache_ttl_sec
        media_type = resp.headers.get("Content-Type", "application/octet-stream")
        headers = {"Cache-Control": f"private, max-age={ttl}"}
        if resp.headers.get("Content-Length"):
            headers["Content-Length"] = resp.headers["Content-Length"]
        logger.debug("Streaming %s/%s", obj.bucket_name, obj.object_name)
        return ObjectDownload(chunks=resp.iter_content(chunk_size=CHUNK_SIZE), headers=headers, media_type=media_type)
