"""
Tests for assessment result endpoints:
- PUT /api/profile/assessment
- DELETE /api/profile/assessment
"""

from httpx import AsyncClient

RESULTS = [
    {"date": "2024-01-01", "type": "personality", "score": 42},
    {"date": "2024-02-01", "type": "aptitude", "score": 17},
    {"date": "2024-01-01", "type": "aptitude", "score": 20},
]


async def _put_results(client: AsyncClient, headers: dict, results: list[dict]):
    return await client.put(
        "/api/profile/assessment",
        json={"results": results},
        headers=headers,
    )


async def _delete_dates(client: AsyncClient, headers: dict, dates: list[str]):
    return await client.request(
        "DELETE",
        "/api/profile/assessment",
        json={"dates": dates},
        headers=headers,
    )


class TestUpdateAssessment:
    """PUT /api/profile/assessment tests."""

    async def test_creates_profile_when_missing(
        self, async_client: AsyncClient, identity: dict, auth_headers
    ):
        """The first submission for a new caller lands with a count of one."""
        response = await _put_results(async_client, auth_headers(identity), RESULTS[:1])
        assert response.status_code == 200
        data = response.json()
        assert data["completed_assessments"] == 1
        assert data["assessment_results"] == RESULTS[:1]

    async def test_replaces_results_wholesale(
        self, async_client: AsyncClient, identity: dict, auth_headers
    ):
        headers = auth_headers(identity)
        await _put_results(async_client, headers, RESULTS)
        response = await _put_results(async_client, headers, RESULTS[1:2])
        assert response.json()["assessment_results"] == RESULTS[1:2]

    async def test_counter_increments_once_per_call(
        self, async_client: AsyncClient, identity: dict, auth_headers
    ):
        """N becomes N+1 no matter how many entries the payload has."""
        headers = auth_headers(identity)
        await async_client.get("/api/profile", headers=headers)

        first = await _put_results(async_client, headers, RESULTS)
        assert first.json()["completed_assessments"] == 1

        second = await _put_results(async_client, headers, RESULTS)
        assert second.json()["completed_assessments"] == 2

        third = await _put_results(async_client, headers, [])
        assert third.json()["completed_assessments"] == 3

    async def test_extra_fields_are_kept(
        self, async_client: AsyncClient, identity: dict, auth_headers
    ):
        entry = {"date": "2024-03-03", "answers": {"q1": "a"}, "label": "Explorer"}
        response = await _put_results(async_client, auth_headers(identity), [entry])
        assert response.json()["assessment_results"] == [entry]

    async def test_entry_without_date_is_rejected(
        self, async_client: AsyncClient, identity: dict, auth_headers
    ):
        response = await _put_results(async_client, auth_headers(identity), [{"score": 1}])
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_requires_auth(self, async_client: AsyncClient):
        response = await async_client.put("/api/profile/assessment", json={"results": []})
        assert response.status_code == 401


class TestDeleteAssessmentResults:
    """DELETE /api/profile/assessment tests."""

    async def test_removes_matching_dates_only(
        self, async_client: AsyncClient, identity: dict, auth_headers
    ):
        headers = auth_headers(identity)
        await _put_results(async_client, headers, RESULTS)
        await _put_results(async_client, headers, RESULTS)

        response = await _delete_dates(async_client, headers, ["2024-01-01"])
        assert response.status_code == 200
        data = response.json()
        assert data["assessment_results"] == [RESULTS[1]]
        assert data["completed_assessments"] == 1

    async def test_decrements_by_number_of_dates(
        self, async_client: AsyncClient, identity: dict, auth_headers
    ):
        headers = auth_headers(identity)
        for _ in range(3):
            await _put_results(async_client, headers, RESULTS)

        response = await _delete_dates(async_client, headers, ["2024-01-01", "2024-02-01"])
        data = response.json()
        assert data["assessment_results"] == []
        assert data["completed_assessments"] == 1

    async def test_unknown_dates_leave_results_untouched(
        self, async_client: AsyncClient, identity: dict, auth_headers
    ):
        headers = auth_headers(identity)
        await _put_results(async_client, headers, RESULTS)
        await _put_results(async_client, headers, RESULTS)

        response = await _delete_dates(async_client, headers, ["1999-12-31"])
        data = response.json()
        assert data["assessment_results"] == RESULTS
        assert data["completed_assessments"] == 1

    async def test_counter_never_goes_negative(
        self, async_client: AsyncClient, identity: dict, auth_headers
    ):
        headers = auth_headers(identity)
        await _put_results(async_client, headers, RESULTS)

        response = await _delete_dates(
            async_client, headers, ["2024-01-01", "2024-02-01", "2024-03-01"]
        )
        assert response.status_code == 200
        assert response.json()["completed_assessments"] == 0

    async def test_profile_without_results(
        self, async_client: AsyncClient, identity: dict, auth_headers
    ):
        headers = auth_headers(identity)
        await async_client.get("/api/profile", headers=headers)

        response = await _delete_dates(async_client, headers, ["2024-01-01"])
        assert response.status_code == 200
        data = response.json()
        assert data["assessment_results"] is None
        assert data["completed_assessments"] == 0

    async def test_missing_profile_returns_404(
        self, async_client: AsyncClient, identity: dict, auth_headers
    ):
        response = await _delete_dates(async_client, auth_headers(identity), ["2024-01-01"])
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"
        assert response.json()["error"]["message"] == "Profile not found"
