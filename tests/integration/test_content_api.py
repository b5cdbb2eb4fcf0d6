"""Blogs, careers and announcements: public reads and admin management."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

BLOG = {
    "title": "Why Five Minutes a Day Works",
    "description": "Spaced practice, explained",
    "content": "Short sessions beat cramming.",
    "tags": ["learning"],
    "category": "research",
}

CAREER = {
    "title": "Senior Backend Engineer",
    "description": "Build the lesson engine",
    "content": "Python, PostgreSQL, Redis.",
    "department": "Engineering",
    "location": "Remote",
    "requirements": ["5+ years Python"],
}


class TestBlogs:
    @pytest.mark.asyncio
    async def test_public_sees_only_published(self, client: AsyncClient, admin_headers):
        await client.post("/api/v1/admin/blogs", json={**BLOG, "is_published": True}, headers=admin_headers)
        await client.post(
            "/api/v1/admin/blogs", json={**BLOG, "title": "Unfinished Draft"}, headers=admin_headers
        )

        public = (await client.get("/api/v1/blogs")).json()
        assert [b["title"] for b in public] == [BLOG["title"]]
        assert public[0]["slug"] == "why-five-minutes-a-day-works"
        assert public[0]["published_at"] is not None

        everything = (await client.get("/api/v1/admin/blogs", headers=admin_headers)).json()
        assert len(everything) == 2

    @pytest.mark.asyncio
    async def test_get_by_slug(self, client: AsyncClient, admin_headers):
        await client.post("/api/v1/admin/blogs", json={**BLOG, "is_published": True}, headers=admin_headers)
        response = await client.get("/api/v1/blogs/why-five-minutes-a-day-works")
        assert response.status_code == 200
        assert response.json()["content"] == BLOG["content"]
        assert (await client.get("/api/v1/blogs/nope")).status_code == 404

    @pytest.mark.asyncio
    async def test_search_and_category(self, client: AsyncClient, admin_headers):
        await client.post("/api/v1/admin/blogs", json={**BLOG, "is_published": True}, headers=admin_headers)
        await client.post(
            "/api/v1/admin/blogs",
            json={**BLOG, "title": "Release Notes", "category": "product", "is_published": True},
            headers=admin_headers,
        )
        assert len((await client.get("/api/v1/blogs", params={"search": "release"})).json()) == 1
        assert len((await client.get("/api/v1/blogs", params={"category": "research"})).json()) == 1

    @pytest.mark.asyncio
    async def test_slug_generation_and_conflict(self, client: AsyncClient, admin_headers):
        first = (await client.post("/api/v1/admin/blogs", json=BLOG, headers=admin_headers)).json()
        second = (await client.post("/api/v1/admin/blogs", json=BLOG, headers=admin_headers)).json()
        assert second["slug"] == f"{first['slug']}-1"

        conflict = await client.post(
            "/api/v1/admin/blogs", json={**BLOG, "slug": first["slug"]}, headers=admin_headers
        )
        assert conflict.status_code == 409

    @pytest.mark.asyncio
    async def test_update_and_delete(self, client: AsyncClient, admin_headers):
        blog = (await client.post("/api/v1/admin/blogs", json=BLOG, headers=admin_headers)).json()

        updated = await client.put(
            f"/api/v1/admin/blogs/{blog['id']}", json={"is_published": True, "excerpt": "tl;dr"}, headers=admin_headers
        )
        assert updated.status_code == 200
        assert updated.json()["excerpt"] == "tl;dr"
        assert updated.json()["published_at"] is not None
        assert updated.json()["last_edited_by"] == "user_admin"

        deleted = await client.delete(f"/api/v1/admin/blogs/{blog['id']}", headers=admin_headers)
        assert deleted.status_code == 200
        assert (await client.get(f"/api/v1/admin/blogs/{blog['id']}", headers=admin_headers)).status_code == 404

    @pytest.mark.asyncio
    async def test_admin_only(self, client: AsyncClient, learner_headers):
        response = await client.post("/api/v1/admin/blogs", json=BLOG, headers=learner_headers)
        assert response.status_code == 403


class TestCareers:
    @pytest.mark.asyncio
    async def test_expired_postings_hidden(self, client: AsyncClient, admin_headers):
        await client.post("/api/v1/admin/careers", json={**CAREER, "is_published": True}, headers=admin_headers)
        await client.post(
            "/api/v1/admin/careers",
            json={**CAREER, "title": "Old Role", "is_published": True, "expires_at": "2020-01-01T00:00:00Z"},
            headers=admin_headers,
        )

        public = (await client.get("/api/v1/careers")).json()
        assert [c["title"] for c in public] == [CAREER["title"]]
        assert (await client.get("/api/v1/careers/old-role")).status_code == 404
        assert (await client.get("/api/v1/careers/senior-backend-engineer")).status_code == 200

        everything = (await client.get("/api/v1/admin/careers", headers=admin_headers)).json()
        assert len(everything) == 2

    @pytest.mark.asyncio
    async def test_department_filter(self, client: AsyncClient, admin_headers):
        await client.post("/api/v1/admin/careers", json={**CAREER, "is_published": True}, headers=admin_headers)
        await client.post(
            "/api/v1/admin/careers",
            json={**CAREER, "title": "Content Designer", "department": "Content", "is_published": True},
            headers=admin_headers,
        )
        data = (await client.get("/api/v1/careers", params={"department": "Content"})).json()
        assert [c["title"] for c in data] == ["Content Designer"]


class TestAnnouncements:
    @pytest.mark.asyncio
    async def test_live_filtering(self, client: AsyncClient, admin_headers):
        base = {"content": "Hello", "is_published": True}
        await client.post("/api/v1/admin/announcements", json={**base, "title": "Live"}, headers=admin_headers)
        await client.post(
            "/api/v1/admin/announcements", json={**base, "title": "Unpublished", "is_published": False},
            headers=admin_headers,
        )
        await client.post(
            "/api/v1/admin/announcements",
            json={**base, "title": "Scheduled", "published_at": "2099-01-01T00:00:00Z"},
            headers=admin_headers,
        )
        await client.post(
            "/api/v1/admin/announcements",
            json={**base, "title": "Expired", "expires_at": "2020-01-01T00:00:00Z"},
            headers=admin_headers,
        )

        live = (await client.get("/api/v1/announcements")).json()
        assert [a["title"] for a in live] == ["Live"]
        assert live[0]["target_audience"] == ["all"]

    @pytest.mark.asyncio
    async def test_audience_filter(self, client: AsyncClient, admin_headers):
        await client.post(
            "/api/v1/admin/announcements",
            json={"title": "Admins Only", "content": "x", "is_published": True, "target_audience": ["admins"]},
            headers=admin_headers,
        )
        await client.post(
            "/api/v1/admin/announcements",
            json={"title": "Everyone", "content": "x", "is_published": True},
            headers=admin_headers,
        )
        learners = {a["title"] for a in (await client.get("/api/v1/announcements", params={"audience": "learners"})).json()}
        admins = {a["title"] for a in (await client.get("/api/v1/announcements", params={"audience": "admins"})).json()}
        assert learners == {"Everyone"}
        assert admins == {"Admins Only", "Everyone"}

    @pytest.mark.asyncio
    async def test_toggle_and_click(self, client: AsyncClient, admin_headers):
        created = (
            await client.post(
                "/api/v1/admin/announcements",
                json={"title": "Maintenance", "content": "Sunday 2am", "type": "MAINTENANCE", "is_published": True},
                headers=admin_headers,
            )
        ).json()
        announcement_id = created["id"]

        click = await client.post(f"/api/v1/announcements/{announcement_id}/click")
        assert click.status_code == 200
        listed = (await client.get("/api/v1/admin/announcements", headers=admin_headers)).json()
        assert listed[0]["click_count"] == 1

        toggled = await client.patch(
            f"/api/v1/admin/announcements/{announcement_id}/toggle", json={"is_active": False}, headers=admin_headers
        )
        assert toggled.json()["message"] == "Announcement deactivated successfully!"
        assert (await client.get("/api/v1/announcements")).json() == []

    @pytest.mark.asyncio
    async def test_click_unknown_is_404(self, client: AsyncClient):
        response = await client.post("/api/v1/announcements/4242/click")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_type_rejected(self, client: AsyncClient, admin_headers):
        response = await client.post(
            "/api/v1/admin/announcements", json={"title": "X", "content": "Y", "type": "GOSSIP"}, headers=admin_headers
        )
        assert response.status_code == 422
