"""Progress endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

QUIZ_DATA = [
    {"id": "q1", "type": "multiple-choice", "correctAnswer": 1, "points": 10},
    {"id": "q2", "type": "fill-blank", "correctAnswer": "list", "points": 10},
]


class TestRecordProgress:
    @pytest.mark.asyncio
    async def test_complete_lesson(self, client: AsyncClient, lesson_factory, learner_headers, mock_email_service):
        lesson = await lesson_factory()
        response = await client.post(
            "/api/v1/progress",
            json={"lesson_id": lesson.id, "completed": True, "time_spent": 300},
            headers=learner_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["progress"]["completed"] is True
        assert data["progress"]["time_spent"] == 300
        assert data["progress"]["attempts"] == 1
        assert data["streak"]["current_streak"] == 1
        names = {a["name"] for a in data["new_achievements"]}
        assert "First Steps" in names
        assert data["quiz"] is None

    @pytest.mark.asyncio
    async def test_path_variant_and_read_back(self, client: AsyncClient, lesson_factory, learner_headers):
        lesson = await lesson_factory()
        before = await client.get(f"/api/v1/lessons/{lesson.id}/progress", headers=learner_headers)
        assert before.status_code == 200
        assert before.json() is None

        await client.post(
            f"/api/v1/lessons/{lesson.id}/progress", json={"video_progress": 42.5}, headers=learner_headers
        )
        after = (await client.get(f"/api/v1/lessons/{lesson.id}/progress", headers=learner_headers)).json()
        assert after["video_progress"] == 42.5
        assert after["completed"] is False

    @pytest.mark.asyncio
    async def test_quiz_scored_on_server(self, client: AsyncClient, lesson_factory, learner_headers, mock_email_service):
        lesson = await lesson_factory("Quiz", lesson_type="QUIZ", quiz_data=QUIZ_DATA)
        response = await client.post(
            f"/api/v1/lessons/{lesson.id}/progress",
            json={"completed": True, "score": 100, "quiz_answers": {"q1": 1, "q2": "tuple"}},
            headers=learner_headers,
        )
        data = response.json()
        assert data["quiz"] == {
            "score": 50,
            "earned_points": 10.0,
            "total_points": 20.0,
            "correct": {"q1": True, "q2": False},
        }
        assert data["progress"]["score"] == 50

    @pytest.mark.asyncio
    async def test_list_progress(self, client: AsyncClient, lesson_factory, learner_headers, mock_email_service):
        first = await lesson_factory("One")
        second = await lesson_factory("Two")
        await client.post("/api/v1/progress", json={"lesson_id": first.id, "completed": True}, headers=learner_headers)
        await client.post("/api/v1/progress", json={"lesson_id": second.id, "time_spent": 10}, headers=learner_headers)

        data = (await client.get("/api/v1/progress", headers=learner_headers)).json()
        assert data["total"] == 2
        assert data["completed"] == 1

    @pytest.mark.asyncio
    async def test_unknown_lesson_is_404(self, client: AsyncClient, learner_headers):
        response = await client.post("/api/v1/progress", json={"lesson_id": 9999, "completed": True}, headers=learner_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_score_out_of_range_rejected(self, client: AsyncClient, lesson_factory, learner_headers):
        lesson = await lesson_factory()
        response = await client.post(
            "/api/v1/progress", json={"lesson_id": lesson.id, "score": 101}, headers=learner_headers
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_malformed_quiz_is_422(self, client: AsyncClient, lesson_factory, learner_headers):
        lesson = await lesson_factory("Broken", lesson_type="QUIZ", quiz_data="nonsense")
        response = await client.post(
            f"/api/v1/lessons/{lesson.id}/progress", json={"quiz_answers": {"q1": 0}}, headers=learner_headers
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_infinite_points_quiz_is_422(self, client: AsyncClient, lesson_factory, learner_headers):
        quiz = [{"id": "q1", "type": "true-false", "correctAnswer": True, "points": "Infinity"}]
        lesson = await lesson_factory("Unbounded", lesson_type="QUIZ", quiz_data=quiz)
        response = await client.post(
            f"/api/v1/lessons/{lesson.id}/progress", json={"quiz_answers": {"q1": True}}, headers=learner_headers
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_requires_auth(self, client: AsyncClient, lesson_factory):
        lesson = await lesson_factory()
        response = await client.post("/api/v1/progress", json={"lesson_id": lesson.id, "completed": True})
        assert response.status_code == 401
