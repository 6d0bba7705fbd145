# Rentaly API - Car Rental Marketplace Backend
# Copyright (C) 2025 Rentaly Authors
# SPDX-License-Identifier: AGPL-3.0-or-later

import pytest


def post_payload(**overrides):
    payload = {
        "title": "Driving the Coast Road to Kaş",
        "excerpt": "A day trip along the D400.",
        "content": "<p>" + "scenic " * 450 + "</p>",
        "category": "Travel Tips",
        "tags": "Antalya, Road Trip, antalya",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def create_post(client, auth_headers):
    def _create(**overrides):
        response = client.post("/api/admin/blog", json=post_payload(**overrides), headers=auth_headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


class TestBlog:
    def test_create_derives_fields(self, create_post):
        post = create_post()
        assert post["status"] == "draft"
        assert post["slug"] == "driving-the-coast-road-to-ka"
        assert post["tags"] == ["antalya", "road trip"]
        assert post["readingTime"] == 3
        assert post["seo"]["metaTitle"] == "Driving the Coast Road to Kaş"
        assert post["featuredImage"]["alt"] == "Driving the Coast Road to Kaş"
        assert post["publishedAt"] is None

    def test_duplicate_titles_get_suffixed_slugs(self, create_post):
        first = create_post()
        second = create_post()
        assert second["slug"] == f"{first['slug']}-2"

    def test_drafts_are_not_public(self, client, create_post):
        post = create_post()
        assert client.get(f"/api/blog/{post['slug']}").status_code == 404
        assert client.get("/api/blog").json()["data"] == []

    def test_publishing_sets_published_at_and_counts_views(self, client, auth_headers, create_post):
        post = create_post()
        response = client.patch(f"/api/admin/blog/{post['id']}/status", json={"status": "published"},
                                headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["data"]["publishedAt"] is not None

        client.get(f"/api/blog/{post['slug']}")
        public = client.get(f"/api/blog/{post['slug']}").json()
        assert public["data"]["views"] == 2
        assert public["relatedPosts"] == []

    def test_public_filters(self, client, create_post):
        create_post(status="published")
        create_post(title="Winter Tyres Explained", category="Maintenance", tags=["Safety"],
                    status="published", content="Tyres matter in winter.")
        create_post(title="Unpublished Draft", tags=["antalya"])

        tagged = client.get("/api/blog", params={"tag": "Antalya"}).json()
        assert tagged["pagination"]["total"] == 1

        categories = {c["name"]: c["count"] for c in client.get("/api/blog/categories").json()["data"]}
        assert categories["Travel Tips"] == 1
        assert categories["Maintenance"] == 1
        assert categories["Insurance"] == 0

        tags = client.get("/api/blog/tags").json()["data"]
        assert {"tag": "safety", "count": 1} in tags

        found = client.get("/api/blog/search", params={"q": "tyres"}).json()
        assert [p["title"] for p in found["data"]] == ["Winter Tyres Explained"]

        assert client.get("/api/blog/search").status_code == 400

    def test_featured_toggle(self, client, auth_headers, create_post):
        post = create_post(status="published")
        response = client.patch(f"/api/admin/blog/{post['id']}/featured", headers=auth_headers)
        assert response.json()["data"]["featured"] is True
        assert len(client.get("/api/blog/featured").json()["data"]) == 1

    def test_title_change_updates_slug(self, client, auth_headers, create_post):
        post = create_post()
        response = client.put(f"/api/admin/blog/{post['id']}", json={"title": "A New Title"}, headers=auth_headers)
        assert response.json()["data"]["slug"] == "a-new-title"

    def test_delete(self, client, auth_headers, create_post):
        post = create_post()
        assert client.delete(f"/api/admin/blog/{post['id']}", headers=auth_headers).status_code == 200
        assert client.get(f"/api/admin/blog/{post['id']}", headers=auth_headers).status_code == 404


class TestNews:
    def test_news_is_published_by_default(self, client, auth_headers):
        response = client.post(
            "/api/admin/news",
            json={"title": "New Office at Antalya Airport", "content": "We moved."},
            headers=auth_headers,
        )
        assert response.status_code == 201
        item = response.json()["data"]
        assert item["status"] == "published"
        assert item["category"] == "General"

        listed = client.get("/api/news").json()["data"]
        assert [n["id"] for n in listed] == [item["id"]]
        assert "content" not in listed[0]

        by_slug = client.get(f"/api/news/{item['slug']}").json()["data"]
        assert by_slug["viewCount"] == 1
        by_id = client.get(f"/api/news/{item['id']}").json()["data"]
        assert by_id["viewCount"] == 2

        assert len(client.get("/api/news/recent").json()["data"]) == 1

    def test_archived_news_is_hidden(self, client, auth_headers):
        item = client.post(
            "/api/admin/news",
            json={"title": "Old Announcement", "content": "Gone.", "status": "archived"},
            headers=auth_headers,
        ).json()["data"]
        assert client.get(f"/api/news/{item['id']}").status_code == 404
        admin_list = client.get("/api/admin/news", headers=auth_headers).json()
        assert admin_list["pagination"]["total"] == 1
