"""End-to-end tests through the HTTP API (in-memory storage)."""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from academy_core.auth.permissions import UserRole
from academy_core.auth.schemas import UserContext


@pytest.fixture
def admin_headers(admin, auth_headers) -> dict[str, str]:
    return auth_headers(admin)


@pytest.fixture
def student_headers(student, auth_headers) -> dict[str, str]:
    return auth_headers(student)


@pytest.fixture
def course(client: TestClient, admin_headers) -> dict:
    """Course with three 100-second videos, the first one a free preview."""
    response = client.post(
        "/v1/admin/courses",
        json={"title": "Pharmacology Basics", "price": "49.90"},
        headers=admin_headers,
    )
    assert response.status_code == 201
    data = response.json()

    data["videos"] = []
    for i in range(1, 4):
        video = client.post(
            f"/v1/admin/courses/{data['id']}/videos",
            json={"title": f"Lesson {i}", "duration": 100, "is_free_preview": i == 1},
            headers=admin_headers,
        )
        assert video.status_code == 201
        data["videos"].append(video.json())
    return data


def purchase(client: TestClient, admin_headers, course_id: str, user_id) -> dict:
    response = client.post(
        "/v1/enrollments/purchases",
        json={"course_id": course_id, "user_id": str(user_id)},
        headers=admin_headers,
    )
    assert response.status_code in (200, 201)
    return response.json()


def report(client, headers, course, video_index, watched, total=100):
    return client.put(
        "/v1/progress/video",
        json={
            "course_id": course["id"],
            "video_id": course["videos"][video_index]["id"],
            "watched_duration": watched,
            "total_duration": total,
        },
        headers=headers,
    )


class TestAuthentication:
    def test_missing_token(self, client: TestClient) -> None:
        response = client.get("/v1/progress/dashboard")

        assert response.status_code == 401
        assert response.json()["error"] is True

    def test_invalid_token(self, client: TestClient) -> None:
        response = client.get(
            "/v1/progress/dashboard", headers={"Authorization": "Bearer nope"}
        )
        assert response.status_code == 401

    def test_admin_routes_reject_students(
        self, client: TestClient, student_headers
    ) -> None:
        response = client.post(
            "/v1/admin/courses", json={"title": "Sneaky course"}, headers=student_headers
        )
        assert response.status_code == 403


class TestVideoAccess:
    def test_listing_for_visitor(self, client, course, student_headers) -> None:
        response = client.get(f"/v1/courses/{course['id']}/videos", headers=student_headers)

        assert response.status_code == 200
        videos = response.json()["videos"]
        assert [v["has_access"] for v in videos] == [True, False, False]
        assert videos[1]["lock_reason"] == "purchase_required"

    def test_listing_after_purchase(
        self, client, course, student, student_headers, admin_headers
    ) -> None:
        purchase(client, admin_headers, course["id"], student.user_id)

        response = client.get(f"/v1/courses/{course['id']}/videos", headers=student_headers)

        data = response.json()
        assert data["user_has_purchased"] is True
        assert all(v["has_access"] for v in data["videos"])


class TestProgressFlow:
    def test_locked_video_is_forbidden(self, client, course, student_headers) -> None:
        response = report(client, student_headers, course, 1, 10)

        assert response.status_code == 403
        body = response.json()
        assert body["kind"] == "purchase_required"
        assert body["error"] is True

    def test_invalid_durations(self, client, course, student_headers) -> None:
        response = report(client, student_headers, course, 0, 150)

        assert response.status_code == 400
        assert response.json()["kind"] == "validation_error"

    def test_zero_total_duration(self, client, course, student_headers) -> None:
        response = report(client, student_headers, course, 0, 0, total=0)
        assert response.status_code == 400

    def test_progress_and_course_completion(
        self, client, course, student, student_headers, admin_headers
    ) -> None:
        purchase(client, admin_headers, course["id"], student.user_id)

        first = report(client, student_headers, course, 0, 95)
        second = report(client, student_headers, course, 1, 105)

        assert first.status_code == 200
        assert first.json()["video_progress"]["is_completed"] is True
        assert first.json()["course_progress"]["course_progress_percentage"] == 33
        assert second.json()["watched_percentage"] == 100
        assert second.json()["course_progress"]["course_progress_percentage"] == 67

        progress = client.get(
            f"/v1/progress/courses/{course['id']}", headers=student_headers
        ).json()
        assert progress["completed_videos"] == 2
        assert progress["total_videos"] == 3

    def test_throttled_report_is_acknowledged(
        self, client, course, student, student_headers, admin_headers
    ) -> None:
        purchase(client, admin_headers, course["id"], student.user_id)

        report(client, student_headers, course, 0, 10)
        response = report(client, student_headers, course, 0, 20)

        assert response.status_code == 200
        assert response.json()["skipped"] is True
        assert response.json()["video_progress"] is None

    def test_course_progress_requires_enrollment(
        self, client, course, student_headers
    ) -> None:
        response = client.get(
            f"/v1/progress/courses/{course['id']}", headers=student_headers
        )
        assert response.status_code == 403

    def test_unknown_video(self, client, course, student_headers) -> None:
        response = client.put(
            "/v1/progress/video",
            json={
                "course_id": course["id"],
                "video_id": str(uuid4()),
                "watched_duration": 10,
                "total_duration": 100,
            },
            headers=student_headers,
        )

        assert response.status_code == 404
        assert response.json()["kind"] == "not_found"


class TestAdminOperations:
    def test_duplicate_purchase_is_idempotent(
        self, client, course, student, admin_headers
    ) -> None:
        first = purchase(client, admin_headers, course["id"], student.user_id)
        second = purchase(client, admin_headers, course["id"], student.user_id)
        assert first == second

    def test_archive_conflict(self, client, course, admin_headers) -> None:
        url = f"/v1/admin/courses/{course['id']}/archive"

        first = client.post(url, json={"reason": "Outdated"}, headers=admin_headers)
        second = client.post(url, json={}, headers=admin_headers)

        assert first.status_code == 200
        assert first.json()["status"] == "archived"
        assert first.json()["archive_grace_period"] is not None
        assert second.status_code == 409
        assert second.json()["kind"] == "invalid_state"

    def test_archived_course_rejects_enrollment(
        self, client, course, admin_headers
    ) -> None:
        client.post(
            f"/v1/admin/courses/{course['id']}/archive", json={}, headers=admin_headers
        )

        response = client.post(
            "/v1/enrollments/purchases",
            json={"course_id": course["id"], "user_id": str(uuid4())},
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json()["kind"] == "not_available"

    def test_reset_video_completion(
        self, client, course, student, student_headers, admin_headers
    ) -> None:
        purchase(client, admin_headers, course["id"], student.user_id)
        report(client, student_headers, course, 0, 100)

        response = client.post(
            "/v1/progress/video/reset",
            json={
                "user_id": str(student.user_id),
                "course_id": course["id"],
                "video_id": course["videos"][0]["id"],
            },
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["is_completed"] is False

    def test_archive_stats(self, client, course, admin_headers) -> None:
        response = client.get("/v1/admin/archive/stats", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["courses"]["active"] == 1

    def test_instructor_is_not_admin(self, client, auth_headers) -> None:
        instructor = UserContext(user_id=uuid4(), role=UserRole.INSTRUCTOR)
        response = client.get("/v1/admin/archive/stats", headers=auth_headers(instructor))
        assert response.status_code == 403


class TestVideoModeration:
    def test_free_preview_toggle(
        self, client, course, student_headers, admin_headers
    ) -> None:
        video_id = course["videos"][1]["id"]

        response = client.put(
            f"/v1/admin/videos/{video_id}/free-preview",
            json={"is_free_preview": True},
            headers=admin_headers,
        )
        listing = client.get(
            f"/v1/courses/{course['id']}/videos", headers=student_headers
        ).json()

        assert response.status_code == 200
        assert response.json()["is_free_preview"] is True
        assert [v["has_access"] for v in listing["videos"]] == [True, True, False]

    def test_archive_and_restore_video(
        self, client, course, student_headers, admin_headers
    ) -> None:
        video_id = course["videos"][2]["id"]
        listing_url = f"/v1/courses/{course['id']}/videos"

        deleted = client.delete(f"/v1/admin/videos/{video_id}", headers=admin_headers)
        hidden = client.get(listing_url, headers=student_headers).json()["videos"]
        again = client.delete(f"/v1/admin/videos/{video_id}", headers=admin_headers)
        restored = client.post(
            f"/v1/admin/videos/{video_id}/restore", headers=admin_headers
        )
        shown = client.get(listing_url, headers=student_headers).json()["videos"]

        assert deleted.status_code == 200
        assert deleted.json()["status"] == "archived"
        assert len(hidden) == 2
        assert again.status_code == 409
        assert restored.json()["status"] == "active"
        assert len(shown) == 3

    def test_students_cannot_moderate(self, client, course, student_headers) -> None:
        video_id = course["videos"][0]["id"]
        response = client.delete(f"/v1/admin/videos/{video_id}", headers=student_headers)
        assert response.status_code == 403

    def test_unknown_video(self, client, admin_headers) -> None:
        response = client.post(
            f"/v1/admin/videos/{uuid4()}/restore", headers=admin_headers
        )
        assert response.status_code == 404

    def test_upload_to_earlier_version_rejected(
        self, client, course, admin_headers
    ) -> None:
        client.post(
            f"/v1/admin/courses/{course['id']}/versions", json={}, headers=admin_headers
        )

        response = client.post(
            f"/v1/admin/courses/{course['id']}/videos",
            json={"title": "Late", "duration": 60, "version_number": 1},
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json()["kind"] == "invalid_state"


class TestAutoArchive:
    def test_recently_deactivated_course_kept(
        self, client, course, admin_headers
    ) -> None:
        client.post(
            f"/v1/admin/courses/{course['id']}/deactivate", headers=admin_headers
        )

        response = client.post("/v1/admin/archive/auto-archive", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"archived": [], "archived_count": 0}

    def test_requires_admin(self, client, student_headers) -> None:
        response = client.post(
            "/v1/admin/archive/auto-archive", headers=student_headers
        )
        assert response.status_code == 403
