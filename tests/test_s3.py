import asyncio
import unittest
from datetime import datetime, timezone

from botocore.exceptions import ClientError

from s3lens.s3 import (
    S3Service,
    error_code,
    is_access_denied_error,
    is_not_found_error,
)


def _client_error(code: str, operation: str = "ListObjectsV2") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestErrorDetection(unittest.TestCase):
    def test_error_code(self) -> None:
        self.assertEqual(error_code(_client_error("NoSuchBucket")), "NoSuchBucket")
        self.assertEqual(error_code(ValueError("x")), "ValueError")

    def test_access_denied(self) -> None:
        self.assertTrue(is_access_denied_error(_client_error("AccessDenied")))
        self.assertTrue(is_access_denied_error(_client_error("AllAccessDisabled")))
        self.assertFalse(is_access_denied_error(_client_error("NoSuchKey")))

    def test_not_found(self) -> None:
        self.assertTrue(is_not_found_error(_client_error("NoSuchBucket")))
        self.assertTrue(is_not_found_error(_client_error("NoSuchKey", "GetObject")))
        self.assertFalse(is_not_found_error(RuntimeError("boom")))


class TestS3Service(unittest.TestCase):
    def test_default_profile_is_normalized(self) -> None:
        self.assertIsNone(S3Service(profile="default").profile)
        self.assertEqual(S3Service(profile="dev").profile, "dev")
        self.assertEqual(S3Service(expiry_seconds=0).expiry_seconds, 1)

    def test_list_buckets_keeps_name_and_creation_date(self) -> None:
        created = datetime(2023, 1, 2, tzinfo=timezone.utc)

        class _Client:
            def list_buckets(self):
                return {
                    "Buckets": [
                        {"Name": "alpha", "CreationDate": created},
                        {"CreationDate": created},
                    ]
                }

        service = S3Service()
        service._s3_client = _Client()
        buckets = asyncio.run(service.list_buckets())
        self.assertEqual(buckets, [{"Name": "alpha", "CreationDate": created}])

    def test_list_objects_follows_continuation(self) -> None:
        class _PagedClient:
            def __init__(self) -> None:
                self.calls: list[dict] = []

            def list_objects_v2(self, **kwargs):
                self.calls.append(kwargs)
                if "ContinuationToken" not in kwargs:
                    return {
                        "IsTruncated": True,
                        "NextContinuationToken": "page-2",
                        "CommonPrefixes": [{"Prefix": "docs/img/"}],
                        "Contents": [{"Key": "docs/a.txt", "Size": 3}],
                    }
                return {
                    "IsTruncated": False,
                    "Contents": [{"Key": "docs/b.txt", "Size": 5, "LastModified": None}],
                }

        client = _PagedClient()
        service = S3Service()
        service._s3_client = client
        listing = asyncio.run(service.list_objects("bucket", "docs/"))

        self.assertEqual(listing["CommonPrefixes"], [{"Prefix": "docs/img/"}])
        self.assertEqual(
            [item["Key"] for item in listing["Contents"]], ["docs/a.txt", "docs/b.txt"]
        )
        self.assertEqual(len(client.calls), 2)
        self.assertEqual(client.calls[0]["Delimiter"], "/")
        self.assertEqual(client.calls[0]["Prefix"], "docs/")
        self.assertEqual(client.calls[1]["ContinuationToken"], "page-2")

    def test_list_objects_propagates_client_errors(self) -> None:
        class _MissingClient:
            def list_objects_v2(self, **_kwargs):
                raise _client_error("NoSuchBucket")

        service = S3Service()
        service._s3_client = _MissingClient()
        with self.assertRaises(ClientError):
            asyncio.run(service.list_objects("missing"))

    def test_presign_uses_get_object_and_expiry(self) -> None:
        class _Client:
            def __init__(self) -> None:
                self.calls: list[tuple] = []

            def generate_presigned_url(self, operation, Params, ExpiresIn):
                self.calls.append((operation, Params, ExpiresIn))
                return "https://signed.example.com/x"

        client = _Client()
        service = S3Service(expiry_seconds=120)
        service._s3_client = client
        self.assertEqual(
            asyncio.run(service.presign("bucket", "docs/a.txt")),
            "https://signed.example.com/x",
        )
        asyncio.run(service.presign("bucket", "docs/a.txt", expires_in=60))
        self.assertEqual(
            client.calls,
            [
                ("get_object", {"Bucket": "bucket", "Key": "docs/a.txt"}, 120),
                ("get_object", {"Bucket": "bucket", "Key": "docs/a.txt"}, 60),
            ],
        )


if __name__ == "__main__":
    unittest.main()
