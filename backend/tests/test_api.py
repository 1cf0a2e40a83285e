import pytest
from fastapi.testclient import TestClient

from archive_vault.core.library import library_state
from archive_vault.main import app

from conftest import make_instruction_zip


@pytest.fixture
def client(tmp_path):
    library_state.set(tmp_path / "library")
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def archive_path(sources):
    return make_instruction_zip(sources / "指令-20240315.zip")


def import_one(client, path):
    response = client.post("/imports", json={"paths": [str(path)]})
    assert response.status_code == 200
    return response.json()


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/").status_code == 200


def test_import_then_browse(client, archive_path):
    summary = import_one(client, archive_path)
    assert (summary["imported"], summary["skipped"], summary["failed"]) == (1, 0, 0)
    archive_id = summary["archives"][0]["archive_id"]

    again = import_one(client, archive_path)
    assert (again["imported"], again["skipped"]) == (0, 1)

    listed = client.get("/archives").json()
    assert [a["archive_id"] for a in listed] == [archive_id]
    assert listed[0]["title"] == "关于开展安全检查的通知"

    detail = client.get(f"/archives/{archive_id}").json()
    assert detail["main_doc"]["instruction_no"] == "ZL-2024-001"
    assert len(detail["attachments"]) == 5

    blocks = client.get(f"/archives/{archive_id}/blocks").json()
    assert blocks[0] == {"block_id": "p:000001", "text": "指令编号：ZL-2024-001"}


def test_failed_file_is_reported_not_raised(client, sources):
    broken = sources / "broken.zip"
    broken.parent.mkdir(parents=True, exist_ok=True)
    broken.write_bytes(b"not a zip at all")

    summary = import_one(client, broken)
    assert summary["failed"] == 1
    assert summary["failures"][0]["path"] == str(broken)


def test_import_requires_sources(client, tmp_path):
    assert client.post("/imports", json={"paths": []}).status_code == 400
    empty_dir = tmp_path / "empty"
    empty_dir.mkdir()
    assert client.post("/imports", json={"directory": str(empty_dir)}).status_code == 400


def test_async_import_job(client, archive_path):
    response = client.post("/imports/async", json={"directory": str(archive_path.parent)})
    assert response.status_code == 202
    job_id = response.json()["job_id"]

    # jobs run in order, so the synchronous import finishes after the queued one
    import_one(client, archive_path)
    job = client.get(f"/imports/{job_id}").json()
    assert job["status"] == "completed"
    assert job["summary"]["imported"] == 1
    assert job["progress"]["is_complete"] is True

    assert client.get("/imports/no-such-job").status_code == 404


def test_search_and_annotations(client, archive_path):
    archive_id = import_one(client, archive_path)["archives"][0]["archive_id"]

    page = client.get("/search", params={"q": "消防设施"}).json()
    assert page["items"][0]["kind"] == "docx_block"
    assert page["items"][0]["block_id"] == "p:000005"

    empty = client.post("/search", json={"query": "   "}).json()
    assert empty == {"items": [], "has_more": False, "offset": 0, "limit": 50}

    created = client.post("/annotations", json={
        "archive_id": archive_id,
        "target_kind": "block",
        "target_ref": "p:000005",
        "locator": {"start": 0, "end": 2},
        "content": "需要复查应急通道",
    })
    assert created.status_code == 201
    annotation_id = created.json()["annotation_id"]

    hits = client.post("/search", json={
        "query": "复查",
        "filters": {"file_types": ["annotation"]},
    }).json()["items"]
    assert [h["annotation_id"] for h in hits] == [annotation_id]

    listed = client.get(f"/archives/{archive_id}/annotations").json()
    assert listed[0]["locator"] == {"start": 0, "end": 2}

    assert client.delete(f"/annotations/{annotation_id}").status_code == 200
    assert client.delete(f"/annotations/{annotation_id}").status_code == 404


def test_annotation_errors(client, archive_path):
    archive_id = import_one(client, archive_path)["archives"][0]["archive_id"]
    blank = {"archive_id": archive_id, "target_kind": "block", "target_ref": "p:000001", "content": " "}
    assert client.post("/annotations", json=blank).status_code == 422
    missing = dict(blank, archive_id="missing", content="备注")
    assert client.post("/annotations", json=missing).status_code == 404


def test_missing_archive_is_404(client):
    assert client.get("/archives/missing").status_code == 404
    assert client.get("/archives/missing/blocks").status_code == 404
    assert client.get("/archives/missing/annotations").status_code == 404
    assert client.post("/archives/missing/reextract").status_code == 404
    assert client.delete("/archives/missing").status_code == 404


def test_reextract_and_delete(client, archive_path):
    archive_id = import_one(client, archive_path)["archives"][0]["archive_id"]

    refreshed = client.post(f"/archives/{archive_id}/reextract")
    assert refreshed.status_code == 200
    assert refreshed.json()["status"] == "completed"

    assert client.get("/archives/integrity").json() == {"checked": 1, "missing": []}

    assert client.delete(f"/archives/{archive_id}").status_code == 200
    assert client.get("/archives").json() == []
    assert client.get("/search", params={"q": "检查"}).json()["items"] == []


def test_change_library_root(client, archive_path, tmp_path):
    import_one(client, archive_path)
    before = client.get("/library").json()
    assert before["index_counts"]["docx_blocks_fts"]["actual"] == 6

    response = client.put("/library", json={"root": str(tmp_path / "other")})
    assert response.status_code == 200
    info = response.json()
    assert info["root"] == str((tmp_path / "other").resolve())
    assert client.get("/archives").json() == []

    assert client.put("/library", json={"root": "  "}).status_code == 400
