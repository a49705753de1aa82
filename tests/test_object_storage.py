from unittest.mock import Mock

import pytest

from main import app, get_object_storage
from object_storage import (
    ObjectStorageService, ObjectStorageError, ObjectNotFoundError, parse_object_path,
)

PRIVATE_DIR = "/coffee-bucket/private"


def sign_response(url="https://storage.googleapis.com/coffee-bucket/private/uploads/abc?sig=1"):
    return Mock(ok=True, status_code=200, json=Mock(return_value={"signed_url": url}))


def object_response(status_code=200, body=b"jpegbytes"):
    resp = Mock(ok=status_code < 400, status_code=status_code,
                headers={"Content-Type": "image/jpeg", "Content-Length": str(len(body))})
    resp.iter_content.return_value = iter([body])
    return resp


@pytest.fixture
def session():
    session = Mock()
    session.post.return_value = sign_response()
    session.get.return_value = object_response()
    return session


@pytest.fixture
def service(session):
    return ObjectStorageService(private_object_dir=PRIVATE_DIR, sidecar_url="http://sidecar:1106", session=session)


# ---------------------------
# Path handling
# ---------------------------
def test_parse_object_path():
    assert parse_object_path("/bucket/a/b/c") == ("bucket", "a/b/c")
    assert parse_object_path("bucket/a") == ("bucket", "a")


def test_parse_object_path_needs_object_name():
    with pytest.raises(ObjectStorageError):
        parse_object_path("/bucket")


def test_normalize_leaves_other_urls_alone(service):
    assert service.normalize_object_entity_path("/objects/uploads/abc") == "/objects/uploads/abc"
    assert service.normalize_object_entity_path("https://example.com/x.jpg") == "https://example.com/x.jpg"


def test_normalize_rewrites_private_upload(service):
    raw = "https://storage.googleapis.com/coffee-bucket/private/uploads/abc?X-Goog-Signature=zzz"
    assert service.normalize_object_entity_path(raw) == "/objects/uploads/abc"


def test_normalize_outside_private_dir_returns_path(service):
    raw = "https://storage.googleapis.com/other-bucket/public/leaf.jpg"
    assert service.normalize_object_entity_path(raw) == "/other-bucket/public/leaf.jpg"


@pytest.mark.parametrize("path", ["/uploads/abc", "/objects/", "objects/abc"])
def test_entity_file_rejects_bad_paths(service, path):
    with pytest.raises(ObjectNotFoundError):
        service.get_object_entity_file(path)


def test_entity_file_resolves_under_private_dir(service):
    obj = service.get_object_entity_file("/objects/uploads/abc")
    assert obj.bucket_name == "coffee-bucket"
    assert obj.object_name == "private/uploads/abc"


# ---------------------------
# Signing
# ---------------------------
def test_upload_url_signed_for_put(service, session):
    url = service.get_object_entity_upload_url()
    assert url.startswith("https://storage.googleapis.com/")
    args, kwargs = session.post.call_args
    assert args[0] == "http://sidecar:1106/object-storage/signed-object-url"
    payload = kwargs["json"]
    assert payload["bucket_name"] == "coffee-bucket"
    assert payload["object_name"].startswith("private/uploads/")
    assert payload["method"] == "PUT"
    assert payload["expires_at"]


def test_upload_url_needs_private_dir(session):
    service = ObjectStorageService(private_object_dir="", session=session)
    with pytest.raises(ObjectStorageError):
        service.get_object_entity_upload_url()
    session.post.assert_not_called()


def test_sign_failure(service, session):
    session.post.return_value = Mock(ok=False, status_code=403)
    with pytest.raises(ObjectStorageError):
        service.get_object_entity_upload_url()


# ---------------------------
# Download
# ---------------------------
def test_download_streams_object(service, session):
    download = service.download_object("/objects/uploads/abc")
    assert b"".join(download.chunks) == b"jpegbytes"
    assert download.media_type == "image/jpeg"
    assert download.headers["Cache-Control"] == "private, max-age=3600"
    assert download.headers["Content-Length"] == "9"
    assert session.post.call_args.kwargs["json"]["method"] == "GET"


def test_download_missing_object(service, session):
    session.get.return_value = object_response(status_code=404)
    with pytest.raises(ObjectNotFoundError):
        service.download_object("/objects/uploads/abc")


# ---------------------------
# Routes
# ---------------------------
@pytest.fixture
def objects_client(client, service):
    app.dependency_overrides[get_object_storage] = lambda: service
    yield client


def test_upload_route(objects_client):
    response = objects_client.post("/api/objects/upload")
    assert response.status_code == 200
    assert response.json()["uploadURL"].startswith("https://storage.googleapis.com/")


def test_upload_route_failure(client, session):
    app.dependency_overrides[get_object_storage] = lambda: ObjectStorageService(private_object_dir="", session=session)
    response = client.post("/api/objects/upload")
    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to get upload URL"


def test_plant_image_route(objects_client):
    response = objects_client.put(
        "/api/plant-images",
        json={"imageURL": "https://storage.googleapis.com/coffee-bucket/private/uploads/abc"},
    )
    assert response.status_code == 200
    assert response.json() == {"objectPath": "/objects/uploads/abc"}


def test_plant_image_requires_url(objects_client):
    assert objects_client.put("/api/plant-images", json={}).status_code == 400


def test_object_route_streams_bytes(objects_client):
    response = objects_client.get("/objects/uploads/abc")
    assert response.status_code == 200
    assert response.content == b"jpegbytes"
    assert response.headers["content-type"] == "image/jpeg"
    assert response.headers["cache-control"] == "private, max-age=3600"
    assert response.headers["content-length"] == "9"


def test_object_route_not_found(objects_client, session):
    session.get.return_value = object_response(status_code=404)
    assert objects_client.get("/objects/uploads/missing").status_code == 404


def test_download_upstream_failure(service, session):
    session.get.return_value = object_response(status_code=500)
    with pytest.raises(ObjectStorageError) as exc:
        service.download_object("/objects/uploads/abc")
    assert not isinstance(exc.value, ObjectNotFoundError)


def test_object_route_upstream_failure(objects_client, session):
    session.get.return_value = object_response(status_code=500)
    response = objects_client.get("/objects/uploads/abc")
    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to fetch object"
