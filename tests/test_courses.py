import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_create_course(client: AsyncClient, course_payload):
    response = await client.post("/api/courses", json=course_payload)
    assert response.status_code == 201
    body = response.json()
    assert body["_id"]
    assert body["name"] == "CS101"
    assert body["status"] == "active"
    assert "createdAt" in body and "updatedAt" in body


@pytest.mark.asyncio
async def test_create_course_missing_fields(client: AsyncClient):
    response = await client.post("/api/courses", json={"name": "CS101"})
    assert response.status_code == 400
    assert "description" in response.json()["message"]


@pytest.mark.asyncio
async def test_create_course_bad_status(client: AsyncClient, course_payload):
    response = await client.post("/api/courses", json=dict(course_payload, status="archived"))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_duplicate_course_name(client: AsyncClient, db, course_payload):
    assert (await client.post("/api/courses", json=course_payload)).status_code == 201
    response = await client.post("/api/courses", json=dict(course_payload, description="Again"))
    assert response.status_code == 400
    assert response.json()["message"] == "Course with this name already exists"
    assert db["courses"].count_documents({}) == 1


@pytest.mark.asyncio
async def test_list_courses_sorted_by_name(client: AsyncClient):
    for name in ("Math", "Art", "Zoology", "Biology"):
        await client.post("/api/courses", json={"name": name, "description": "d", "duration": "4w"})
    response = await client.get("/api/courses")
    assert response.status_code == 200
    assert [c["name"] for c in response.json()] == ["Art", "Biology", "Math", "Zoology"]


@pytest.mark.asyncio
async def test_update_course(client: AsyncClient, course_payload):
    created = (await client.post("/api/courses", json=course_payload)).json()
    response = await client.put(f"/api/courses/{created['_id']}", json={"status": "inactive"})
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "inactive"
    assert body["name"] == "CS101"


@pytest.mark.asyncio
async def test_update_missing_course(client: AsyncClient, db):
    response = await client.put("/api/courses/507f1f77bcf86cd799439011", json={"duration": "2w"})
    assert response.status_code == 404
    assert response.json()["message"] == "Course not found"
    assert db["courses"].count_documents({}) == 0


@pytest.mark.asyncio
async def test_update_course_malformed_id(client: AsyncClient):
    response = await client.put("/api/courses/not-an-id", json={"duration": "2w"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_course(client: AsyncClient, course_payload):
    created = (await client.post("/api/courses", json=course_payload)).json()
    response = await client.delete(f"/api/courses/{created['_id']}")
    assert response.status_code == 200
    assert response.json() == {"message": "Course deleted successfully"}
    assert (await client.get("/api/courses")).json() == []


@pytest.mark.asyncio
async def test_delete_missing_course(client: AsyncClient):
    response = await client.delete("/api/courses/507f1f77bcf86cd799439011")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_course_referenced_by_id(client: AsyncClient, db, course_payload, student_payload):
    created = (await client.post("/api/courses", json=course_payload)).json()
    await client.post("/api/students", json=dict(student_payload, course=created["_id"]))
    response = await client.delete(f"/api/courses/{created['_id']}")
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot delete course with enrolled students"
    assert db["courses"].count_documents({}) == 1


@pytest.mark.asyncio
async def test_course_lifecycle_with_enrolled_student(client: AsyncClient, course_payload, student_payload):
    course = await client.post("/api/courses", json=course_payload)
    assert course.status_code == 201
    course_id = course.json()["_id"]

    student = await client.post("/api/students", json=student_payload)
    assert student.status_code == 201

    blocked = await client.delete(f"/api/courses/{course_id}")
    assert blocked.status_code == 400
    assert blocked.json()["message"] == "Cannot delete course with enrolled students"

    removed = await client.delete(f"/api/students/{student.json()['_id']}")
    assert removed.status_code == 200

    deleted = await client.delete(f"/api/courses/{course_id}")
    assert deleted.status_code == 200


@pytest.mark.asyncio
async def test_update_course_rejects_nulls(client: AsyncClient, course_payload):
    created = (await client.post("/api/courses", json=course_payload)).json()
    response = await client.put(f"/api/courses/{created['_id']}", json={"description": None})
    assert response.status_code == 400
    listed = (await client.get("/api/courses")).json()
    assert listed[0]["description"] == "Intro"


@pytest.mark.asyncio
async def test_update_course_duplicate_name(client: AsyncClient, course_payload):
    await client.post("/api/courses", json=course_payload)
    other = (await client.post("/api/courses", json=dict(course_payload, name="MATH200"))).json()
    response = await client.put(f"/api/courses/{other['_id']}", json={"name": "CS101"})
    assert response.status_code == 400
    assert response.json()["message"] == "Course with this name already exists"
    names = sorted(c["name"] for c in (await client.get("/api/courses")).json())
    assert names == ["CS101", "MATH200"]


@pytest.mark.asyncio
async def test_created_course_matches_listing(client: AsyncClient, course_payload):
    created = (await client.post("/api/courses", json=course_payload)).json()
    listed = (await client.get("/api/courses")).json()
    assert listed == [created]
