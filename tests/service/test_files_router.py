import hashlib
import os

import pytest
from fastapi.testclient import TestClient

from schema.files import FileRecord
from service import create_app


def _payload(size: int) -> bytes:
    return bytes(i % 251 for i in range(size))


# -- upload ------------------------------------------------------------------


def test_upload_returns_record(upload, settings):
    response = upload("lobeck", "Quarterly Report.pdf", b"%PDF-1.4 test", folder="reports")

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "File uploaded successfully"

    data = body["data"]
    assert data["originalName"] == "Quarterly Report.pdf"
    assert data["fileName"] == f"{data['fileId']}.pdf"
    assert data["client"] == "lobeck"
    assert data["folder"] == "reports"
    assert data["mimeType"] == "application/pdf"
    assert data["url"] == f"/static/lobeck/reports/{data['fileName']}"
    assert "path" not in data

    stored = settings.upload_root / "lobeck" / "reports" / data["fileName"]
    assert stored.read_bytes() == b"%PDF-1.4 test"


def test_upload_round_trip(upload, test_client, auth_headers):
    content = _payload(5000)
    data = upload("gaesa", "drawing.dwg", content).json()["data"]

    response = test_client.get(f"/api/files/download/{data['fileId']}", headers=auth_headers("gaesa"))

    assert response.status_code == 200
    assert response.content == content
    assert hashlib.sha256(response.content).hexdigest() == data["hash"]
    assert response.headers["content-length"] == "5000"
    assert response.headers["accept-ranges"] == "bytes"
    assert response.headers["cache-control"] == "public, max-age=31536000, immutable"
    assert response.headers["content-disposition"] == 'attachment; filename="file.dwg"'


def test_upload_sanitizes_folder(upload):
    data = upload("lobeck", "a.txt", b"a", folder="my docs/../x").json()["data"]
    assert data["folder"] == "my_docs/x"


def test_upload_into_hidden_folder_round_trip(upload, test_client, auth_headers, settings):
    data = upload("lobeck", "a.txt", b"hello", folder=".private").json()["data"]
    assert data["folder"] == ".private"

    listed = test_client.get("/api/files/list/lobeck", headers=auth_headers("lobeck")).json()
    assert [item["fileId"] for item in listed["data"]] == [data["fileId"]]

    download = test_client.get(f"/api/files/download/{data['fileId']}", headers=auth_headers("lobeck"))
    assert download.status_code == 200
    assert download.content == b"hello"

    metadata = test_client.get(f"/api/files/metadata/{data['fileId']}", headers=auth_headers("lobeck"))
    assert metadata.json()["data"]["folder"] == ".private"

    deleted = test_client.delete(f"/api/files/{data['fileId']}", headers=auth_headers("lobeck"))
    assert deleted.status_code == 200
    assert not (settings.upload_root / "lobeck" / ".private" / data["fileName"]).exists()


def test_upload_without_file_part(test_client, auth_headers):
    response = test_client.post("/api/files/upload", data={"folder": "x"}, headers=auth_headers("lobeck"))

    assert response.status_code == 400
    assert response.json()["error"] == "File not found in form field 'file'"


def test_upload_rejects_disallowed_type(upload, settings):
    response = upload("shared", "archive.zip", b"PK\x03\x04")

    assert response.status_code == 400
    assert response.json()["error"].startswith("File type not allowed")
    assert not (settings.upload_root / "shared").exists()


def test_upload_accepts_allowed_type_without_token(test_client):
    response = test_client.post(
        "/api/files/upload",
        files={"file": ("note.txt", b"hello", "text/plain")},
        headers={"X-Client-Id": "shared"},
    )
    assert response.status_code == 201


@pytest.fixture
def small_limit_client(settings):
    app = create_app(settings.model_copy(update={"MAX_FILE_SIZE": 1024}))
    with TestClient(app) as client:
        yield client


def test_upload_over_limit_leaves_nothing(small_limit_client, auth_headers, settings):
    response = small_limit_client.post(
        "/api/files/upload",
        files={"file": ("big.bin", _payload(2048), "application/octet-stream")},
        headers=auth_headers("lobeck"),
    )

    assert response.status_code == 400
    assert response.json()["error"] == "File too large. Maximum: 1024 bytes"
    assert not (settings.upload_root / "lobeck").exists()
    assert os.listdir(settings.staging_dir) == []


def test_upload_declared_length_over_limit(small_limit_client, auth_headers, settings):
    response = small_limit_client.post(
        "/api/files/upload",
        files={"file": ("big.bin", _payload(200 * 1024), "application/octet-stream")},
        headers=auth_headers("lobeck"),
    )

    assert response.status_code == 400
    assert response.json()["code"] == 400
    assert not (settings.upload_root / "lobeck").exists()


def test_unknown_client_touches_nothing(upload, settings):
    response = upload("nope", "a.txt", b"a")

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid client: nope", "code": 400}
    assert sorted(os.listdir(settings.upload_root)) == [".staging"]


# -- download ----------------------------------------------------------------


@pytest.fixture
def thousand_bytes(upload):
    return upload("lobeck", "data.bin", _payload(1000)).json()["data"]


def test_range_request(test_client, auth_headers, thousand_bytes):
    response = test_client.get(
        f"/api/files/download/{thousand_bytes['fileId']}",
        headers={**auth_headers("lobeck"), "Range": "bytes=0-99"},
    )

    assert response.status_code == 206
    assert response.content == _payload(1000)[:100]
    assert response.headers["content-range"] == "bytes 0-99/1000"
    assert response.headers["content-length"] == "100"


def test_range_past_end_is_unsatisfiable(test_client, auth_headers, thousand_bytes):
    response = test_client.get(
        f"/api/files/download/{thousand_bytes['fileId']}",
        headers={**auth_headers("lobeck"), "Range": "bytes=900-1200"},
    )

    assert response.status_code == 416
    assert response.headers["content-range"] == "bytes */1000"
    assert response.content == b""


def test_download_missing_file(test_client, auth_headers):
    response = test_client.get("/api/files/download/does-not-exist", headers=auth_headers("lobeck"))

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_download_is_scoped_to_client(test_client, auth_headers, thousand_bytes):
    response = test_client.get(
        f"/api/files/download/{thousand_bytes['fileId']}",
        headers=auth_headers("gaesa"),
    )
    assert response.status_code == 404


def test_duplicate_id_is_a_conflict(test_client, auth_headers, settings):
    file_id = "0b5e3f4c-8d2a-4c1e-9f6b-2a7d9e1c3b4a"
    for folder in ("one", "two"):
        target = settings.upload_root / "lobeck" / folder
        target.mkdir(parents=True)
        (target / f"{file_id}.txt").write_bytes(b"x")

    response = test_client.get(f"/api/files/metadata/{file_id}", headers=auth_headers("lobeck"))

    assert response.status_code == 409


# -- list & search -----------------------------------------------------------


@pytest.fixture
def catalog_files(upload):
    upload("lobeck", "readme.txt", b"r" * 10)
    upload("lobeck", "logo.png", b"l" * 20, folder="img")
    upload("lobeck", "manual.pdf", b"m" * 30, folder="docs")
    upload("lobeck", "notes.txt", b"n" * 40, folder="docs")


def test_list_files(test_client, auth_headers, catalog_files):
    response = test_client.get("/api/files/list/lobeck", headers=auth_headers("lobeck"))

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["count"] == 4
    assert response.headers["x-total-count"] == "4"
    records = [FileRecord.model_validate(item) for item in body["data"]]
    assert {r.folder for r in records} == {"", "img", "docs"}
    assert all(r.tenant == "lobeck" for r in records)


def test_list_is_idempotent(test_client, auth_headers, catalog_files):
    first = test_client.get("/api/files/list/lobeck", headers=auth_headers("lobeck")).json()
    second = test_client.get("/api/files/list/lobeck", headers=auth_headers("lobeck")).json()
    assert first == second


def test_list_filter_folder_and_sort(test_client, auth_headers, catalog_files):
    response = test_client.get(
        "/api/files/list/lobeck",
        params={"folder": "docs", "sort": "size", "order": "asc"},
        headers=auth_headers("lobeck"),
    )
    assert [item["size"] for item in response.json()["data"]] == [30, 40]

    response = test_client.get(
        "/api/files/list/lobeck",
        params={"filter": "PNG"},
        headers=auth_headers("lobeck"),
    )
    assert [item["extension"] for item in response.json()["data"]] == [".png"]


def test_list_pagination(test_client, auth_headers, upload):
    for i in range(12):
        upload("lobeck", f"f{i}.txt", b"x")

    response = test_client.get(
        "/api/files/list/lobeck",
        params={"limit": 5, "offset": 10},
        headers=auth_headers("lobeck"),
    )

    assert len(response.json()["data"]) == 2
    assert response.json()["count"] == 12


def test_list_public_client_without_token(test_client):
    response = test_client.get("/api/files/list/shared")
    assert response.status_code == 200
    assert response.json()["data"] == []


def test_list_protected_client_without_token(test_client):
    response = test_client.get("/api/files/list/lobeck")
    assert response.status_code == 401


def test_list_non_numeric_paging_uses_defaults(test_client, auth_headers, catalog_files):
    response = test_client.get(
        "/api/files/list/lobeck",
        params={"limit": "many", "offset": "later"},
        headers=auth_headers("lobeck"),
    )

    assert response.status_code == 200
    body = response.json()
    assert len(body["data"]) == 4
    assert body["count"] == 4


def test_search(test_client, auth_headers, catalog_files):
    response = test_client.post(
        "/api/files/search/lobeck",
        json={"query": "fil", "types": ["text/*"], "sort": "size", "order": "desc"},
        headers=auth_headers("lobeck"),
    )

    assert response.status_code == 200
    # stored text files are recovered as "file.txt"
    assert [item["size"] for item in response.json()["data"]] == [40, 10]
    assert response.headers["x-total-count"] == "2"


def test_search_size_bounds(test_client, auth_headers, catalog_files):
    response = test_client.post(
        "/api/files/search/lobeck",
        json={"query": "file", "minSize": 15, "maxSize": 35},
        headers=auth_headers("lobeck"),
    )
    assert sorted(item["size"] for item in response.json()["data"]) == [20, 30]


def test_search_requires_query(test_client, auth_headers):
    response = test_client.post("/api/files/search/lobeck", json={"query": "  "}, headers=auth_headers("lobeck"))

    assert response.status_code == 400
    assert response.json()["error"] == "Search query is required"


def test_search_rejects_bad_date(test_client, auth_headers):
    response = test_client.post(
        "/api/files/search/lobeck",
        json={"query": "a", "dateFrom": "yesterday"},
        headers=auth_headers("lobeck"),
    )
    assert response.status_code == 400


# -- metadata & delete -------------------------------------------------------


def test_metadata(test_client, auth_headers, thousand_bytes):
    response = test_client.get(
        f"/api/files/metadata/{thousand_bytes['fileId']}",
        headers=auth_headers("lobeck"),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["fileId"] == thousand_bytes["fileId"]
    assert data["size"] == 1000
    # the hash is only known at upload time
    assert "hash" not in data


def test_delete(test_client, auth_headers, thousand_bytes, settings):
    file_id = thousand_bytes["fileId"]

    response = test_client.delete(f"/api/files/{file_id}", headers=auth_headers("lobeck"))

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "File deleted successfully", "fileId": file_id}
    assert not (settings.upload_root / "lobeck" / thousand_bytes["fileName"]).exists()

    again = test_client.delete(f"/api/files/{file_id}", headers=auth_headers("lobeck"))
    assert again.status_code == 404


class DenyAllDeletePolicy:
    def can_delete(self, context, record) -> bool:
        return False


def test_delete_policy_denial(settings, auth_headers):
    with TestClient(create_app(settings, delete_policy=DenyAllDeletePolicy())) as client:
        data = client.post(
            "/api/files/upload",
            files={"file": ("a.txt", b"a", "text/plain")},
            headers=auth_headers("lobeck"),
        ).json()["data"]

        response = client.delete(f"/api/files/{data['fileId']}", headers=auth_headers("lobeck"))

    assert response.status_code == 403
    assert (settings.upload_root / "lobeck" / data["fileName"]).exists()


def test_bulk_delete_collects_errors(test_client, auth_headers, upload):
    first = upload("lobeck", "a.txt", b"a").json()["data"]["fileId"]
    second = upload("lobeck", "b.txt", b"b").json()["data"]["fileId"]

    response = test_client.post(
        "/api/files/bulk-delete",
        json={"fileIds": [first, "missing-id", second]},
        headers=auth_headers("lobeck"),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["deleted"] == 2
    assert body["failed"] == 1
    assert body["total"] == 3
    assert body["deletedFiles"] == [first, second]
    assert [e["fileId"] for e in body["errors"]] == ["missing-id"]


@pytest.mark.parametrize("file_ids", [[], [f"id-{i}" for i in range(101)]])
def test_bulk_delete_size_limits(test_client, auth_headers, file_ids):
    response = test_client.post(
        "/api/files/bulk-delete",
        json={"fileIds": file_ids},
        headers=auth_headers("lobeck"),
    )
    assert response.status_code == 400
