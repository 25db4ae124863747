from __future__ import annotations

import asyncio
import logging
from typing import Optional

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_SECONDS = 300
ACCESS_DENIED_CODES = {"accessdenied", "accessdeniedexception", "allaccessdisabled"}
NOT_FOUND_CODES = {"nosuchbucket", "nosuchkey", "notfound"}


def error_code(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        code = exc.response.get("Error", {}).get("Code")
        if code:
            return str(code)
    return type(exc).__name__


def is_access_denied_error(exc: Exception) -> bool:
    names = {error_code(exc).lower(), type(exc).__name__.lower()}
    return bool(names & ACCESS_DENIED_CODES)


def is_not_found_error(exc: Exception) -> bool:
    names = {error_code(exc).lower(), type(exc).__name__.lower()}
    return bool(names & NOT_FOUND_CODES)


class S3Service:
    def __init__(
        self,
        profile: Optional[str] = None,
        region: Optional[str] = None,
        expiry_seconds: int = DEFAULT_EXPIRY_SECONDS,
    ) -> None:
        self.profile = None if profile in (None, "", "default") else profile
        self._region = region
        self.expiry_seconds = max(1, int(expiry_seconds))
        self._s3_client = None

    def _client(self):
        if self._s3_client is not None:
            return self._s3_client
        if self.profile is None:
            session = boto3.session.Session()
        else:
            session = boto3.session.Session(profile_name=self.profile)
        if self._region:
            client = session.client("s3", region_name=self._region)
        else:
            client = session.client("s3")
        self._s3_client = client
        return client

    async def list_buckets(self) -> list[dict]:
        return await asyncio.to_thread(self._list_buckets)

    def _list_buckets(self) -> list[dict]:
        response = self._client().list_buckets()
        buckets: list[dict] = []
        for bucket in response.get("Buckets", []):
            name = bucket.get("Name")
            if not name:
                continue
            buckets.append({"Name": name, "CreationDate": bucket.get("CreationDate")})
        return buckets

    async def list_objects(self, bucket: str, prefix: str = "") -> dict[str, list]:
        return await asyncio.to_thread(self._list_objects, bucket, prefix)

    def _list_objects(self, bucket: str, prefix: str) -> dict[str, list]:
        logger.debug("Listing s3://%s/%s", bucket, prefix)
        client = self._client()
        prefixes: list[dict] = []
        contents: list[dict] = []
        continuation: Optional[str] = None
        while True:
            kwargs = {
                "Bucket": bucket,
                "Delimiter": "/",
                "Prefix": prefix,
                "MaxKeys": 1000,
            }
            if continuation:
                kwargs["ContinuationToken"] = continuation
            response = client.list_objects_v2(**kwargs)
            for entry in response.get("CommonPrefixes", []):
                value = entry.get("Prefix")
                if value:
                    prefixes.append({"Prefix": value})
            for entry in response.get("Contents", []):
                key = entry.get("Key")
                if not key:
                    continue
                contents.append(
                    {
                        "Key": key,
                        "Size": int(entry.get("Size", 0)),
                        "LastModified": entry.get("LastModified"),
                    }
                )
            if response.get("IsTruncated"):
                continuation = response.get("NextContinuationToken")
            else:
                break
        return {"Contents": contents, "CommonPrefixes": prefixes}

    async def presign(
        self, bucket: str, key: str, expires_in: Optional[int] = None
    ) -> str:
        return await asyncio.to_thread(self._presign, bucket, key, expires_in)

    def _presign(self, bucket: str, key: str, expires_in: Optional[int]) -> str:
        return self._client().generate_presigned_url(
            "get_object",
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=expires_in or self.expiry_seconds,
        )
