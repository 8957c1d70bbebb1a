from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO


class StorageError(RuntimeError):
    pass


def check_owner_prefix(key: str, user_id: str) -> str:
    """
    Keys are laid out as `<user_id>/...`; the first path segment must be the owner.
    Returns the normalised key.
    """
    safe_key = key.lstrip("/").replace("\\", "/")
    parts = safe_key.split("/")
    if len(parts) < 2 or parts[0] != user_id or any(p in ("", ".", "..") for p in parts):
        raise StorageError(f"Key {key!r} is outside the storage area of user {user_id}.")
    return safe_key


class Storage:
    def put_bytes(self, bucket: str, key: str, data: bytes, *, content_type: str | None = None) -> None:
        raise NotImplementedError

    def open(self, bucket: str, key: str) -> BinaryIO:
        raise NotImplementedError

    def exists(self, bucket: str, key: str) -> bool:
        raise NotImplementedError

    def delete(self, bucket: str, key: str) -> None:
        raise NotImplementedError

    def public_url(self, bucket: str, key: str) -> str:
        raise NotImplementedError

    # Owner-checked helpers used by request handlers.
    def put_for_user(self, bucket: str, user_id: str, key: str, data: bytes, *, content_type: str | None = None) -> str:
        safe_key = check_owner_prefix(key, user_id)
        self.put_bytes(bucket, safe_key, data, content_type=content_type)
        return safe_key

    def open_for_user(self, bucket: str, user_id: str, key: str) -> BinaryIO:
        return self.open(bucket, check_owner_prefix(key, user_id))

    def delete_for_user(self, bucket: str, user_id: str, key: str) -> None:
        self.delete(bucket, check_owner_prefix(key, user_id))


@dataclass(frozen=True)
class LocalStorage(Storage):
    root: Path
    public_base_url: str = ""

    def _path(self, bucket: str, key: str) -> Path:
        safe_key = key.lstrip("/").replace("\\", "/")
        return self.root / bucket / safe_key

    def put_bytes(self, bucket: str, key: str, data: bytes, *, content_type: str | None = None) -> None:
        p = self._path(bucket, key)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)

    def open(self, bucket: str, key: str) -> BinaryIO:
        p = self._path(bucket, key)
        if not p.exists():
            raise StorageError(f"Object not found: {bucket}/{key}")
        return p.open("rb")

    def exists(self, bucket: str, key: str) -> bool:
        return self._path(bucket, key).exists()

    def delete(self, bucket: str, key: str) -> None:
        p = self._path(bucket, key)
        if p.exists():
            p.unlink()

    def public_url(self, bucket: str, key: str) -> str:
        base = self.public_base_url.rstrip("/") or "/storage"
        return f"{base}/{bucket}/{key.lstrip('/')}"


@dataclass(frozen=True)
class S3Storage(Storage):
    endpoint: str
    region: str
    access_key_id: str
    secret_access_key: str
    public_base_url: str = ""

    def _client(self):
        import boto3

        return boto3.client(
            "s3",
            endpoint_url=f"https://{self.endpoint}" if self.endpoint else None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
        )

    def put_bytes(self, bucket: str, key: str, data: bytes, *, content_type: str | None = None) -> None:
        extra: dict[str, object] = {}
        if content_type:
            extra["ContentType"] = content_type
        self._client().put_object(Bucket=bucket, Key=key, Body=data, **extra)

    def open(self, bucket: str, key: str) -> BinaryIO:
        obj = self._client().get_object(Bucket=bucket, Key=key)
        return obj["Body"]  # type: ignore[return-value]

    def exists(self, bucket: str, key: str) -> bool:
        from botocore.exceptions import ClientError

        try:
            self._client().head_object(Bucket=bucket, Key=key)
            return True
        except ClientError:
            return False

    def delete(self, bucket: str, key: str) -> None:
        self._client().delete_object(Bucket=bucket, Key=key)

    def public_url(self, bucket: str, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{bucket}/{key.lstrip('/')}"
        host = self.endpoint or f"s3.{self.region}.amazonaws.com"
        return f"https://{bucket}.{host}/{key.lstrip('/')}"


def storage_from_config(config: dict) -> Storage:
    backend = (config.get("STORAGE_BACKEND") or "local").strip().lower()
    public_base = (config.get("PUBLIC_STORAGE_BASE_URL") or "").strip()
    if backend == "s3":
        return S3Storage(
            endpoint=(config.get("S3_ENDPOINT") or "").strip(),
            region=(config.get("S3_REGION") or "us-east-1").strip(),
            access_key_id=(config.get("S3_ACCESS_KEY_ID") or "").strip(),
            secret_access_key=(config.get("S3_SECRET_ACCESS_KEY") or "").strip(),
            public_base_url=public_base,
        )
    # default local
    root = (config.get("STORAGE_ROOT") or "").strip()
    return LocalStorage(root=Path(root) if root else Path(os.getcwd()) / "storage", public_base_url=public_base)
