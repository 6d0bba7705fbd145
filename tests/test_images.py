# Rentaly API - Car Rental Marketplace Backend
# Copyright (C) 2025 Rentaly Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

import asyncio
from pathlib import Path

import pytest

from factories import PNG_BYTES
from rentaly.services.uploads import UploadError, get_image_storage


def png(name="car.png"):
    return (name, PNG_BYTES, "image/png")


def test_upload_requires_admin(client):
    assert client.post("/api/images/upload", files={"image": png()}).status_code == 401


def test_upload_and_delete_local_image(client, auth_headers, config_file):
    response = client.post("/api/images/upload", files={"image": png("My Car!.png")}, headers=auth_headers)
    assert response.status_code == 200, response.text
    saved = response.json()["data"]
    assert saved["storage"] == "local"
    assert response.json()["imageUrl"] == saved["url"]
    assert "/uploads/cars/My-Car-" in saved["url"]

    stored_file = Path(config_file).parent / "uploads" / "cars" / saved["url"].rsplit("/", 1)[1]
    assert stored_file.read_bytes() == PNG_BYTES

    deleted = client.request("DELETE", "/api/images/delete", json={"publicId": saved["publicId"]},
                             headers=auth_headers)
    assert deleted.status_code == 200
    assert not stored_file.exists()

    again = client.request("DELETE", "/api/images/delete", json={"publicId": saved["publicId"]},
                           headers=auth_headers)
    assert again.status_code == 404


def test_delete_by_path(client, auth_headers):
    saved = client.post("/api/images/upload", files={"image": png()}, headers=auth_headers).json()["data"]
    path = "/uploads/cars/" + saved["url"].rsplit("/", 1)[1]
    response = client.request("DELETE", "/api/images/delete", json={"imagePath": path}, headers=auth_headers)
    assert response.status_code == 200


def test_delete_rejects_path_traversal(client, auth_headers):
    response = client.request(
        "DELETE", "/api/images/delete", json={"imagePath": "/uploads/../../etc/passwd"}, headers=auth_headers
    )
    assert response.status_code == 400


def test_rejects_wrong_type_and_empty_files(client, auth_headers):
    text = client.post("/api/images/upload", files={"image": ("notes.txt", b"hello", "text/plain")},
                       headers=auth_headers)
    assert text.status_code == 400

    empty = client.post("/api/images/upload", files={"image": ("empty.png", b"", "image/png")},
                        headers=auth_headers)
    assert empty.status_code == 400


def test_upload_multiple(client, auth_headers):
    files = [("images", png("a.png")), ("images", png("b.png"))]
    response = client.post("/api/images/upload-multiple", files=files, headers=auth_headers)
    assert response.status_code == 200
    assert len(response.json()["imageUrls"]) == 2


def test_listing_images_endpoint(client, auth_headers):
    files = [("mainImage", png("main.png")), ("galleryImages", png("g1.png"))]
    response = client.post("/api/images/car-listing", files=files, headers=auth_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["mainImage"]["format"] == "png"
    assert len(data["gallery"]) == 1

    nothing = client.post("/api/images/car-listing", data={"note": "x"}, headers=auth_headers)
    assert nothing.status_code == 400


class OversizedUpload:
    filename = "huge.png"
    content_type = "image/png"

    def __init__(self, size):
        self.size = size
        self.requested = None

    async def read(self, size=-1):
        self.requested = size
        return b"\x00" * (self.size if size < 0 else min(size, self.size))


def test_oversized_upload_is_read_only_past_the_limit(client):
    limit = 5 * 1024 * 1024
    upload = OversizedUpload(limit * 3)

    with pytest.raises(UploadError):
        asyncio.run(get_image_storage().save_upload(upload))
    assert upload.requested == limit + 1


def test_oversized_file_rejected_over_http(client, auth_headers):
    big = ("big.png", PNG_BYTES + b"\x00" * (5 * 1024 * 1024), "image/png")
    response = client.post("/api/images/upload", files={"image": big}, headers=auth_headers)
    assert response.status_code == 400
