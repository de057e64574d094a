"""Tests for the file REST API"""

import pytest

from filehost.api.routes.files import read_limited_body
from filehost.core.storage import FileTooLargeError


class TestAuthentication:
    def test_missing_token(self, client):
        response = client.get("/api/users/u1/files")

        assert response.status_code == 401
        assert response.json()["code"] == "FH-401"

    def test_unknown_token(self, client):
        response = client.get(
            "/api/users/u1/files", headers={"Authorization": "Bearer nope"}
        )

        assert response.status_code == 401

    def test_x_auth_token_header(self, client):
        response = client.get("/api/users/u1/files", headers={"X-Auth-Token": "token-u1"})

        assert response.status_code == 200

    def test_other_tenant_is_forbidden(self, client, u2_headers):
        response = client.get("/api/users/u1/files", headers=u2_headers)

        assert response.status_code == 403

    def test_other_tenant_cannot_write(self, client, u2_headers, file_service):
        response = client.post(
            "/api/users/u1/files/create",
            json={"path": "a.txt", "content": "x"},
            headers=u2_headers,
        )

        assert response.status_code == 403
        assert not file_service.resolve_path("u1", "a.txt").exists()


class TestListing:
    def test_list_root(self, client, u1_headers, file_service):
        root = file_service.resolver.tenant_root("u1")
        (root / "docs").mkdir()
        (root / "a.txt").write_text("hello")

        response = client.get("/api/users/u1/files", headers=u1_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["path"] == "/"
        assert data["parent_path"] == "/"
        assert [entry["name"] for entry in data["entries"]] == ["docs", "a.txt"]

        docs, a_txt = data["entries"]
        assert docs["is_directory"] is True
        assert docs["url"] == "/api/users/u1/files/docs"
        assert docs["content_url"] is None
        assert a_txt["size"] == 5
        assert a_txt["mime_type"] == "text/plain"
        assert a_txt["url"] == "/api/users/u1/raw/a.txt"
        assert a_txt["content_url"] == "/api/users/u1/content/a.txt"

    def test_list_nested(self, client, u1_headers, file_service):
        root = file_service.resolver.tenant_root("u1")
        (root / "docs" / "2024").mkdir(parents=True)
        (root / "docs" / "2024" / "notes.md").write_text("# notes")

        response = client.get("/api/users/u1/files/docs/2024", headers=u1_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["path"] == "/docs/2024"
        assert data["parent_path"] == "/docs"
        assert data["entries"][0]["content_url"] == "/api/users/u1/content/docs/2024/notes.md"

    def test_urls_are_percent_encoded(self, client, u1_headers, file_service):
        root = file_service.resolver.tenant_root("u1")
        (root / "my docs").mkdir()
        (root / "a#b.txt").write_text("hash")
        (root / "what? 50%.md").write_text("odd")

        response = client.get("/api/users/u1/files", headers=u1_headers)

        entries = {entry["name"]: entry for entry in response.json()["entries"]}
        assert entries["my docs"]["url"] == "/api/users/u1/files/my%20docs"
        assert entries["a#b.txt"]["content_url"] == "/api/users/u1/content/a%23b.txt"
        assert entries["a#b.txt"]["url"] == "/api/users/u1/raw/a%23b.txt"
        assert entries["what? 50%.md"]["content_url"] == "/api/users/u1/content/what%3F%2050%25.md"

        assert client.get(entries["a#b.txt"]["content_url"], headers=u1_headers).text == "hash"
        assert client.get(entries["a#b.txt"]["url"], headers=u1_headers).content == b"hash"
        assert client.get(entries["what? 50%.md"]["content_url"], headers=u1_headers).text == "odd"
        assert client.get(entries["my docs"]["url"], headers=u1_headers).status_code == 200

    def test_list_missing_directory(self, client, u1_headers):
        response = client.get("/api/users/u1/files/missing", headers=u1_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "FH-404"


class TestTextContent:
    def test_create_read_update(self, client, u1_headers):
        response = client.post(
            "/api/users/u1/files/create",
            json={"path": "docs/hello.md", "content": "# hello"},
            headers=u1_headers,
        )
        assert response.status_code == 201
        assert response.json()["path"] == "/docs/hello.md"
        assert response.json()["size"] == 7

        response = client.get("/api/users/u1/content/docs/hello.md", headers=u1_headers)
        assert response.status_code == 200
        assert response.text == "# hello"
        assert response.headers["content-type"].startswith("text/markdown")

        response = client.put(
            "/api/users/u1/content/docs/hello.md", content=b"# bye", headers=u1_headers
        )
        assert response.status_code == 200
        assert response.json()["size"] == 5

        response = client.get("/api/users/u1/content/docs/hello.md", headers=u1_headers)
        assert response.text == "# bye"

    def test_create_existing_conflicts(self, client, u1_headers):
        payload = {"path": "a.txt", "content": "a"}
        client.post("/api/users/u1/files/create", json=payload, headers=u1_headers)

        response = client.post("/api/users/u1/files/create", json=payload, headers=u1_headers)

        assert response.status_code == 409
        assert response.json()["code"] == "FH-409"

    def test_image_is_not_text(self, client, u1_headers, file_service):
        (file_service.resolver.tenant_root("u1") / "cat.png").write_bytes(b"\x89PNG")

        response = client.get("/api/users/u1/content/cat.png", headers=u1_headers)

        assert response.status_code == 400

    def test_read_missing(self, client, u1_headers):
        response = client.get("/api/users/u1/content/missing.txt", headers=u1_headers)

        assert response.status_code == 404

    def test_file_too_large(self, client, u1_headers):
        response = client.post(
            "/api/users/u1/files/create",
            json={"path": "big.txt", "content": "x" * 513},
            headers=u1_headers,
        )

        assert response.status_code == 413

    @pytest.mark.parametrize(
        "path",
        ["../u2/a.txt", "../../etc/passwd", "..\\u2\\a.txt", "%2e%2e%2fu2%2fa.txt", "a\x00.txt"],
    )
    def test_traversal_is_rejected(self, client, u1_headers, file_service, path):
        response = client.post(
            "/api/users/u1/files/create",
            json={"path": path, "content": "pwned"},
            headers=u1_headers,
        )

        assert response.status_code == 400
        assert not (file_service.resolver.storage_root / "u2" / "a.txt").exists()


class TestRawContent:
    def test_read_raw(self, client, u1_headers, file_service):
        data = b"\x89PNG\r\n\x1a\n\x00\x01"
        (file_service.resolver.tenant_root("u1") / "cat.png").write_bytes(data)

        response = client.get("/api/users/u1/raw/cat.png", headers=u1_headers)

        assert response.status_code == 200
        assert response.content == data
        assert response.headers["content-type"] == "image/png"
        assert response.headers["content-disposition"] == "inline"

    def test_upload(self, client, u1_headers, file_service):
        response = client.post(
            "/api/users/u1/upload",
            files={"file": ("cat.png", b"\x89PNG", "image/png")},
            data={"path": "images"},
            headers=u1_headers,
        )

        assert response.status_code == 201
        assert response.json()["path"] == "/images/cat.png"
        assert response.json()["mime_type"] == "image/png"
        assert file_service.resolve_path("u1", "images/cat.png").read_bytes() == b"\x89PNG"


class TestMutations:
    def test_create_directory_twice(self, client, u1_headers):
        for _ in range(2):
            response = client.post(
                "/api/users/u1/directory/create", json={"path": "a/b"}, headers=u1_headers
            )
            assert response.status_code == 201
            assert response.json()["path"] == "/a/b"

    def test_delete(self, client, u1_headers, file_service):
        client.post(
            "/api/users/u1/files/create",
            json={"path": "docs/a.txt", "content": "a"},
            headers=u1_headers,
        )

        response = client.post(
            "/api/users/u1/files/delete", json={"path": "docs"}, headers=u1_headers
        )

        assert response.status_code == 200
        assert not file_service.resolve_path("u1", "docs").exists()

    def test_delete_missing(self, client, u1_headers):
        response = client.post(
            "/api/users/u1/files/delete", json={"path": "missing"}, headers=u1_headers
        )

        assert response.status_code == 404

    def test_rename_conflict(self, client, u1_headers):
        for name in ("a.txt", "b.txt"):
            client.post(
                "/api/users/u1/files/create",
                json={"path": name, "content": name},
                headers=u1_headers,
            )

        response = client.post(
            "/api/users/u1/files/rename",
            json={"old_path": "a.txt", "new_path": "b.txt"},
            headers=u1_headers,
        )

        assert response.status_code == 409
        assert client.get("/api/users/u1/content/b.txt", headers=u1_headers).text == "b.txt"

    def test_rename_under_a_file(self, client, u1_headers, file_service):
        for name in ("a.txt", "b.txt"):
            client.post(
                "/api/users/u1/files/create",
                json={"path": name, "content": name},
                headers=u1_headers,
            )

        response = client.post(
            "/api/users/u1/files/rename",
            json={"old_path": "b.txt", "new_path": "a.txt/c.txt"},
            headers=u1_headers,
        )

        assert response.status_code == 400
        assert file_service.resolve_path("u1", "b.txt").exists()
        assert client.get("/api/users/u1/content/a.txt", headers=u1_headers).text == "a.txt"

    def test_rename(self, client, u1_headers):
        client.post(
            "/api/users/u1/files/create",
            json={"path": "a.txt", "content": "a"},
            headers=u1_headers,
        )

        response = client.post(
            "/api/users/u1/files/rename",
            json={"old_path": "a.txt", "new_path": "archive/a.txt"},
            headers=u1_headers,
        )

        assert response.status_code == 200
        assert response.json()["new_path"] == "/archive/a.txt"

    def test_missing_body_field(self, client, u1_headers):
        response = client.post("/api/users/u1/files/delete", json={}, headers=u1_headers)

        assert response.status_code == 400
        assert response.json()["details"]["errors"]


class TestQuota:
    def test_quota_exceeded(self, client, u1_headers, file_service):
        file_service.quota.max_bytes = 10

        response = client.post(
            "/api/users/u1/files/create",
            json={"path": "a.txt", "content": "12345"},
            headers=u1_headers,
        )
        assert response.status_code == 201

        response = client.post(
            "/api/users/u1/files/create",
            json={"path": "b.txt", "content": "123456"},
            headers=u1_headers,
        )
        assert response.status_code == 400
        disk_usage = response.json()["details"]["disk_usage"]
        assert disk_usage["used"] == 5
        assert disk_usage["total"] == 10
        assert disk_usage["required"] == 6

        response = client.put("/api/users/u1/content/a.txt", content=b"1234", headers=u1_headers)
        assert response.status_code == 200

        response = client.get("/api/storage/usage", headers=u1_headers)
        assert response.status_code == 200
        assert response.json() == {"used": 4, "total": 10, "percentage": 40.0}


class TestServiceEndpoints:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_metrics(self, client, u1_headers):
        client.get("/api/users/u1/files", headers=u1_headers)

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "filehost_storage_operations_total" in response.text

    def test_correlation_id_is_echoed(self, client, u1_headers):
        response = client.get(
            "/api/users/u1/files",
            headers={**u1_headers, "X-Correlation-ID": "test-correlation"},
        )

        assert response.headers["X-Correlation-ID"] == "test-correlation"


class TestErrorBodies:
    """Error responses name tenant paths, never server paths"""

    @pytest.fixture
    def populated(self, client, u1_headers):
        for name in ("a.txt", "b.txt"):
            client.post(
                "/api/users/u1/files/create",
                json={"path": name, "content": name},
                headers=u1_headers,
            )
        client.post("/api/users/u1/directory/create", json={"path": "docs"}, headers=u1_headers)

    @pytest.mark.parametrize(
        "method, url, body",
        [
            ("post", "/api/users/u1/files/rename", {"old_path": "b.txt", "new_path": "a.txt/c.txt"}),
            ("post", "/api/users/u1/files/rename", {"old_path": "a.txt", "new_path": "b.txt"}),
            ("post", "/api/users/u1/files/rename", {"old_path": "gone.txt", "new_path": "c.txt"}),
            ("post", "/api/users/u1/files/rename", {"old_path": "docs", "new_path": "docs/inner"}),
            ("post", "/api/users/u1/files/create", {"path": "a.txt/d.txt", "content": "x"}),
            ("post", "/api/users/u1/directory/create", {"path": "a.txt/sub"}),
            ("post", "/api/users/u1/directory/create", {"path": "a.txt"}),
            ("post", "/api/users/u1/files/delete", {"path": "missing"}),
            ("get", "/api/users/u1/content/docs", None),
            ("get", "/api/users/u1/raw/missing.png", None),
        ],
    )
    def test_storage_root_is_not_disclosed(
        self, client, u1_headers, file_service, populated, method, url, body
    ):
        kwargs = {"headers": u1_headers}
        if body is not None:
            kwargs["json"] = body

        response = getattr(client, method)(url, **kwargs)

        assert 400 <= response.status_code < 500
        assert str(file_service.resolver.storage_root) not in response.text

    def test_conflict_names_the_tenant_path(self, client, u1_headers, populated):
        response = client.post(
            "/api/users/u1/files/rename",
            json={"old_path": "a.txt", "new_path": "b.txt"},
            headers=u1_headers,
        )

        assert response.status_code == 409
        assert response.json()["details"]["path"] == "/b.txt"


class TestSizeLimits:
    """Bodies over the per-file limit (512 bytes here) are refused while reading"""

    def test_oversized_upload(self, client, u1_headers, file_service):
        response = client.post(
            "/api/users/u1/upload",
            files={"file": ("big.bin", b"x" * 2048, "application/octet-stream")},
            headers=u1_headers,
        )

        assert response.status_code == 413
        assert not file_service.resolve_path("u1", "big.bin").exists()

    def test_oversized_update(self, client, u1_headers, file_service):
        response = client.put(
            "/api/users/u1/content/big.txt", content=b"x" * 2048, headers=u1_headers
        )

        assert response.status_code == 413
        assert not file_service.resolve_path("u1", "big.txt").exists()

    def test_oversized_chunked_update(self, client, u1_headers, file_service):
        def chunks():
            for _ in range(8):
                yield b"x" * 256

        response = client.put(
            "/api/users/u1/content/big.txt", content=chunks(), headers=u1_headers
        )

        assert response.status_code == 413
        assert not file_service.resolve_path("u1", "big.txt").exists()

    @pytest.mark.asyncio
    async def test_body_reading_stops_past_the_limit(self):
        consumed = []

        class StreamingRequest:
            headers = {}

            async def stream(self):
                for _ in range(100):
                    consumed.append(1)
                    yield b"x" * 100

        with pytest.raises(FileTooLargeError):
            await read_limited_body(StreamingRequest(), 250)

        assert len(consumed) == 3

    @pytest.mark.asyncio
    async def test_declared_length_is_refused_before_reading(self):
        class DeclaredRequest:
            headers = {"content-length": str(10 * 1024 ** 3)}

            async def stream(self):
                raise AssertionError("body must not be read")
                yield b""

        with pytest.raises(FileTooLargeError):
            await read_limited_body(DeclaredRequest(), 512)

    def test_update_image_is_rejected(self, client, u1_headers, file_service):
        response = client.put(
            "/api/users/u1/content/cat.png", content=b"\x89PNG", headers=u1_headers
        )

        assert response.status_code == 400
        assert not file_service.resolve_path("u1", "cat.png").exists()
