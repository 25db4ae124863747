import json
import unittest
from datetime import datetime, timedelta, timezone

import httpx

from s3lens.api import ApiClient
from s3lens.auth import Session, auth_headers, raise_for_response
from s3lens.config import Settings
from s3lens.errors import (
    ApiError,
    NotAuthenticatedError,
    NotFoundError,
    PermissionDeniedError,
    ServerError,
)


class TestSession(unittest.TestCase):
    def test_missing_token(self) -> None:
        with self.assertRaises(NotAuthenticatedError):
            auth_headers(Session())

    def test_expired_token_is_not_returned(self) -> None:
        past = datetime.now(timezone.utc) - timedelta(minutes=1)
        session = Session(token="abc", expires_at=past)
        self.assertTrue(session.is_expired())
        self.assertIsNone(session.get_token())

    def test_headers_carry_raw_token(self) -> None:
        headers = auth_headers(Session(token="abc"))
        self.assertEqual(headers["Authorization"], "abc")
        self.assertEqual(headers["Content-Type"], "application/json")

    def test_from_settings(self) -> None:
        expires = datetime(2030, 1, 1, tzinfo=timezone.utc)
        session = Session.from_settings(Settings(token="t", token_expires_at=expires))
        self.assertEqual((session.token, session.expires_at), ("t", expires))


class TestRaiseForResponse(unittest.TestCase):
    def test_status_mapping(self) -> None:
        cases = [
            (401, NotAuthenticatedError, "Authentication failed. Please sign in again."),
            (
                403,
                PermissionDeniedError,
                "Access denied. You do not have permission to access this resource.",
            ),
            (500, ServerError, "Server error. Please try again later."),
            (503, ServerError, "Server error. Please try again later."),
            (404, NotFoundError, "Not found: bucket"),
            (400, ApiError, "Not found: bucket"),
        ]
        for status, error_type, message in cases:
            with self.subTest(status=status):
                response = httpx.Response(status, json={"message": "Not found: bucket"})
                with self.assertRaises(error_type) as ctx:
                    raise_for_response(response)
                self.assertEqual(ctx.exception.message, message)
                self.assertEqual(ctx.exception.status, status)

    def test_message_falls_back_to_text_then_status(self) -> None:
        with self.assertRaises(ApiError) as ctx:
            raise_for_response(httpx.Response(409, text="conflict"))
        self.assertEqual(ctx.exception.message, "conflict")
        with self.assertRaises(ApiError) as ctx:
            raise_for_response(httpx.Response(418))
        self.assertEqual(ctx.exception.message, "Request failed with status 418")

    def test_success_passes(self) -> None:
        raise_for_response(httpx.Response(204))


class TestApiClient(unittest.IsolatedAsyncioTestCase):
    def _client(self, handler, token="id-token") -> ApiClient:
        return ApiClient(
            "http://backend.test/",
            Session(token=token),
            transport=httpx.MockTransport(handler),
        )

    async def test_list_buckets(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json=[{"Name": "a", "CreationDate": "2024-01-01T00:00:00Z"}, "junk"]
            )

        client = self._client(handler)
        buckets = await client.list_buckets()
        await client.aclose()
        self.assertEqual(buckets, [{"Name": "a", "CreationDate": "2024-01-01T00:00:00Z"}])
        self.assertEqual(str(seen[0].url), "http://backend.test/buckets")
        self.assertEqual(seen[0].headers["authorization"], "id-token")

    async def test_list_objects_sends_prefix_only_when_set(self) -> None:
        urls: list[httpx.URL] = []

        def handler(request: httpx.Request) -> httpx.Response:
            urls.append(request.url)
            return httpx.Response(200, json={"Contents": None})

        client = self._client(handler)
        root = await client.list_objects("my bucket")
        nested = await client.list_objects("b", "docs/img/")
        self.assertEqual(root, {"CommonPrefixes": [], "Contents": []})
        self.assertEqual(nested["Contents"], [])
        self.assertEqual(urls[0].path, "/buckets/my bucket/objects")
        self.assertNotIn("prefix", urls[0].params)
        self.assertEqual(urls[1].params["prefix"], "docs/img/")

    async def test_presign_posts_body(self) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"url": "https://signed"})

        client = self._client(handler)
        self.assertEqual(await client.presign("b", "k/x.txt"), "https://signed")
        self.assertEqual(bodies, [{"bucket": "b", "key": "k/x.txt"}])

    async def test_presign_without_url(self) -> None:
        client = self._client(lambda request: httpx.Response(200, json={}))
        with self.assertRaises(ApiError) as ctx:
            await client.presign("b", "k")
        self.assertEqual(ctx.exception.message, "No presigned URL received")

    async def test_no_token_makes_no_request(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=[])

        client = self._client(handler, token=None)
        with self.assertRaises(NotAuthenticatedError):
            await client.list_buckets()
        self.assertEqual(calls, [])

    async def test_non_json_body_is_api_error(self) -> None:
        client = self._client(
            lambda request: httpx.Response(200, text="<html>oops</html>")
        )
        calls = (client.list_buckets(), client.list_objects("b"), client.presign("b", "k"))
        for call in calls:
            with self.assertRaises(ApiError) as ctx:
                await call
            self.assertEqual(ctx.exception.message, "Invalid response from backend")

    async def test_transport_error_is_server_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = self._client(handler)
        with self.assertRaises(ServerError) as ctx:
            await client.list_buckets()
        self.assertIn("Could not reach backend", ctx.exception.message)


if __name__ == "__main__":
    unittest.main()
