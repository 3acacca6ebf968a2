"""Media file metadata: validation, ownership, counters and bulk operations."""

import pytest

API = "/api/v1/media-management"


def file_payload(**overrides):
    payload = {
        "filename": "brake-pad.png",
        "mimetype": "image/png",
        "size": 2048,
        "url": "https://cdn.example.com/brake-pad.png",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def owner(make_user, auth_headers):
    return auth_headers(make_user())


@pytest.fixture
def media(client, owner):
    res = client.post(f"{API}/files", json=file_payload(), headers=owner)
    assert res.status_code == 201
    return res.get_json()["data"]


def test_register_file(media):
    assert media["type"] == "image"
    assert media["originalName"] == "brake-pad.png"
    assert media["views"] == 0


def test_rejects_unknown_mimetype(client, owner):
    res = client.post(f"{API}/files", json=file_payload(mimetype="application/x-msdownload"), headers=owner)
    assert res.status_code == 400
    assert res.get_json()["error"] == "INVALID_FILE_TYPE"


def test_rejects_oversized_file(client, owner):
    res = client.post(f"{API}/files", json=file_payload(size=11 * 1024 * 1024), headers=owner)
    assert res.status_code == 400
    assert res.get_json()["error"] == "FILE_TOO_LARGE"


def test_get_increments_views(client, owner, media):
    url = f"{API}/files/{media['_id']}"
    client.get(url, headers=owner)
    assert client.get(url, headers=owner).get_json()["data"]["views"] == 2


def test_download_increments_downloads(client, owner, media):
    res = client.get(f"{API}/files/{media['_id']}/download", headers=owner)
    assert res.get_json()["data"]["url"] == media["url"]
    listing = client.get(f"{API}/files", headers=owner).get_json()["data"]["files"]
    assert listing[0]["downloads"] == 1


def test_only_owner_or_admin_can_modify(client, user_headers, admin_headers, owner, media):
    url = f"{API}/files/{media['_id']}"
    res = client.put(url, json={"category": "parts"}, headers=user_headers)
    assert res.status_code == 403
    assert res.get_json()["error"] == "ACCESS_DENIED"
    assert client.delete(url, headers=user_headers).status_code == 403

    assert client.put(url, json={"category": "parts"}, headers=owner).get_json()["data"]["category"] == "parts"
    assert client.delete(url, headers=admin_headers).status_code == 200
    assert client.get(url, headers=owner).status_code == 404


def test_invalid_file_id(client, owner):
    res = client.get(f"{API}/files/nope", headers=owner)
    assert res.status_code == 400
    assert res.get_json()["error"] == "INVALID_ID"


def test_bulk_operations(client, admin_headers, media):
    res = client.post(f"{API}/bulk-operations",
                      json={"operation": "add_tags", "fileIds": [media["_id"]], "data": {"tags": ["brakes"]}},
                      headers=admin_headers)
    assert res.get_json()["data"]["affected"] == 1

    res = client.post(f"{API}/bulk-operations",
                      json={"operation": "shred", "fileIds": [media["_id"]]}, headers=admin_headers)
    assert res.status_code == 400
    assert res.get_json()["error"] == "INVALID_OPERATION"


def test_bulk_requires_manager(client, owner, media):
    res = client.post(f"{API}/bulk-operations", json={"operation": "delete", "fileIds": [media["_id"]]},
                      headers=owner)
    assert res.status_code == 403
