"""Lesson catalog, category and bookmark endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from mlc.db.models import Category
from tests.conftest import auth_headers


class TestLessonCatalog:
    @pytest.mark.asyncio
    async def test_only_published_lessons_listed(self, client: AsyncClient, lesson_factory):
        await lesson_factory("Published One")
        await lesson_factory("Draft One", is_published=False)

        response = await client.get("/api/v1/lessons")
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert [lesson["title"] for lesson in data["lessons"]] == ["Published One"]

    @pytest.mark.asyncio
    async def test_filters(self, client: AsyncClient, db_session: AsyncSession, lesson_factory):
        cooking = Category(name="Cooking", slug="cooking", description="Food", sort_order=9)
        db_session.add(cooking)
        await db_session.commit()
        await lesson_factory("Knife Skills", category=cooking, difficulty="ADVANCED")
        await lesson_factory("Loops in Python", lesson_type="VIDEO")
        await lesson_factory("Python Basics Quiz", lesson_type="QUIZ")

        by_category = (await client.get("/api/v1/lessons", params={"category": "cooking"})).json()
        assert [x["title"] for x in by_category["lessons"]] == ["Knife Skills"]

        by_name = (await client.get("/api/v1/lessons", params={"category": "Cooking"})).json()
        assert by_name["total"] == 1

        by_type = (await client.get("/api/v1/lessons", params={"type": "video"})).json()
        assert [x["title"] for x in by_type["lessons"]] == ["Loops in Python"]

        by_difficulty = (await client.get("/api/v1/lessons", params={"difficulty": "advanced"})).json()
        assert by_difficulty["total"] == 1

        by_search = (await client.get("/api/v1/lessons", params={"search": "python"})).json()
        assert by_search["total"] == 2

    @pytest.mark.asyncio
    async def test_search_wildcards_match_literally(self, client: AsyncClient, lesson_factory):
        await lesson_factory("100% Test Coverage")
        await lesson_factory("snake_case Names")
        await lesson_factory("Plain Lesson")

        percent = (await client.get("/api/v1/lessons", params={"search": "%"})).json()
        assert [x["title"] for x in percent["lessons"]] == ["100% Test Coverage"]

        underscore = (await client.get("/api/v1/lessons", params={"search": "_"})).json()
        assert [x["title"] for x in underscore["lessons"]] == ["snake_case Names"]

        backslash = (await client.get("/api/v1/lessons", params={"search": "\\"})).json()
        assert backslash["total"] == 0

    @pytest.mark.asyncio
    async def test_pagination(self, client: AsyncClient, lesson_factory):
        for i in range(5):
            await lesson_factory(f"Lesson {i}")
        data = (await client.get("/api/v1/lessons", params={"limit": 2, "offset": 2})).json()
        assert data["total"] == 5
        assert len(data["lessons"]) == 2

    @pytest.mark.asyncio
    async def test_limit_capped(self, client: AsyncClient):
        response = await client.get("/api/v1/lessons", params={"limit": 500})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_lesson_detail(self, client: AsyncClient, lesson_factory):
        lesson = await lesson_factory("Detail", content="Full body")
        response = await client.get(f"/api/v1/lessons/{lesson.id}")
        assert response.status_code == 200
        data = response.json()
        assert data["content"] == "Full body"
        assert data["category_slug"] == "programming"
        assert data["completed"] is False

    @pytest.mark.asyncio
    async def test_draft_detail_is_404(self, client: AsyncClient, lesson_factory):
        draft = await lesson_factory("Secret", is_published=False)
        response = await client.get(f"/api/v1/lessons/{draft.id}")
        assert response.status_code == 404
        assert response.json()["detail"] == "Lesson not found"

    @pytest.mark.asyncio
    async def test_categories_listed_in_order(self, client: AsyncClient):
        response = await client.get("/api/v1/categories")
        assert response.status_code == 200
        slugs = [c["slug"] for c in response.json()]
        assert slugs == ["programming", "data-science", "design", "business"]

    @pytest.mark.asyncio
    async def test_completed_flag_for_authenticated_caller(
        self, client: AsyncClient, lesson_factory, learner_headers, mock_email_service
    ):
        lesson = await lesson_factory()
        await client.post(f"/api/v1/lessons/{lesson.id}/progress", json={"completed": True}, headers=learner_headers)

        data = (await client.get("/api/v1/lessons", headers=learner_headers)).json()
        assert data["lessons"][0]["completed"] is True

        anonymous = (await client.get("/api/v1/lessons")).json()
        assert anonymous["lessons"][0]["completed"] is False


class TestBookmarks:
    @pytest.mark.asyncio
    async def test_toggle_on_and_off(self, client: AsyncClient, lesson_factory, learner_headers):
        lesson = await lesson_factory()

        on = await client.post("/api/v1/bookmarks", json={"lesson_id": lesson.id}, headers=learner_headers)
        assert on.status_code == 200
        assert on.json() == {"is_bookmarked": True, "message": "Lesson bookmarked!"}

        listed = (await client.get("/api/v1/bookmarks", headers=learner_headers)).json()
        assert [b["lesson"]["id"] for b in listed["bookmarks"]] == [lesson.id]
        assert listed["bookmarks"][0]["lesson"]["bookmarked"] is True

        off = await client.post("/api/v1/bookmarks", json={"lesson_id": lesson.id}, headers=learner_headers)
        assert off.json() == {"is_bookmarked": False, "message": "Bookmark removed!"}

        listed = (await client.get("/api/v1/bookmarks", headers=learner_headers)).json()
        assert listed["bookmarks"] == []

    @pytest.mark.asyncio
    async def test_bookmark_unknown_lesson(self, client: AsyncClient, learner_headers):
        response = await client.post("/api/v1/bookmarks", json={"lesson_id": 424242}, headers=learner_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_bookmarks_are_per_user(self, client: AsyncClient, lesson_factory, learner_headers):
        lesson = await lesson_factory()
        await client.post("/api/v1/bookmarks", json={"lesson_id": lesson.id}, headers=learner_headers)

        other = auth_headers("user_other", email="other@example.com")
        listed = (await client.get("/api/v1/bookmarks", headers=other)).json()
        assert listed["bookmarks"] == []

    @pytest.mark.asyncio
    async def test_bookmarks_require_auth(self, client: AsyncClient):
        response = await client.get("/api/v1/bookmarks")
        assert response.status_code == 401
