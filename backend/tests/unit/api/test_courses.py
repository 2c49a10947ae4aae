"""
Unit Tests for Course API Endpoints
"""
import pytest
from httpx import AsyncClient


def course_payload(**overrides):
    data = {
        'name': 'Web Development',
        'days': ['monday', 'Thursday'],
        'timing': {'start_time': '18:00', 'end_time': '20:00'},
        'duration': '6 months',
        'price': 25000,
        'mode_of_delivery': 'Hybrid',
    }
    data.update(overrides)
    return data


class TestCreateCourse:
    @pytest.mark.asyncio
    async def test_create_course(self, client: AsyncClient, maintenance_user, maintenance_headers):
        response = await client.post('/api/v1/courses', json=course_payload(), headers=maintenance_headers)

        assert response.status_code == 201
        data = response.json()
        assert data['name'] == 'Web Development'
        assert data['days'] == ['Monday', 'Thursday']
        assert data['price'] == 25000
        assert data['is_active'] is True
        assert data['created_by'] == maintenance_user.id

    @pytest.mark.asyncio
    async def test_admin_cannot_create(self, client: AsyncClient, admin_headers):
        response = await client.post('/api/v1/courses', json=course_payload(), headers=admin_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_anonymous_cannot_create(self, client: AsyncClient):
        response = await client.post('/api/v1/courses', json=course_payload())
        assert response.status_code == 401

    @pytest.mark.asyncio
    @pytest.mark.parametrize('overrides', [
        {'days': ['Funday']},
        {'days': []},
        {'timing': {'start_time': '9am', 'end_time': '11:00'}},
        {'price': -1},
        {'mode_of_delivery': 'Carrier pigeon'},
    ])
    async def test_invalid_payload(self, client: AsyncClient, maintenance_headers, overrides):
        response = await client.post('/api/v1/courses', json=course_payload(**overrides), headers=maintenance_headers)
        assert response.status_code == 422


class TestReadCourses:
    @pytest.mark.asyncio
    async def test_list_is_public_and_hides_inactive(self, client: AsyncClient, course_factory):
        active = await course_factory(name='Data Science')
        await course_factory(name='Retired Course', is_active=False)

        response = await client.get('/api/v1/courses')

        assert response.status_code == 200
        names = [c['name'] for c in response.json()]
        assert active.name in names
        assert 'Retired Course' not in names

    @pytest.mark.asyncio
    async def test_count_includes_inactive(self, client: AsyncClient, course_factory):
        await course_factory()
        await course_factory(is_active=False)

        response = await client.get('/api/v1/courses/count')
        assert response.json() == {'total': 2}

    @pytest.mark.asyncio
    async def test_get_course(self, client: AsyncClient, course):
        response = await client.get(f'/api/v1/courses/{course.id}')

        assert response.status_code == 200
        assert response.json()['timing'] == {'start_time': '09:00', 'end_time': '11:00'}

    @pytest.mark.asyncio
    @pytest.mark.parametrize('course_id', ['not-a-uuid', '7c9e6679-7425-40de-944b-e07fc1f90ae7'])
    async def test_unknown_course(self, client: AsyncClient, db_session, course_id):
        response = await client.get(f'/api/v1/courses/{course_id}')
        assert response.status_code == 404


class TestUpdateCourse:
    @pytest.mark.asyncio
    async def test_partial_update(self, client: AsyncClient, course, maintenance_headers):
        response = await client.put(
            f'/api/v1/courses/{course.id}',
            json={'price': 18000, 'timing': {'start_time': '10:00', 'end_time': '12:00'}},
            headers=maintenance_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data['price'] == 18000
        assert data['timing']['start_time'] == '10:00'
        assert data['name'] == course.name

    @pytest.mark.asyncio
    async def test_instructor_cannot_update(self, client: AsyncClient, course, instructor_headers):
        response = await client.put(f'/api/v1/courses/{course.id}', json={'price': 1}, headers=instructor_headers)
        assert response.status_code == 403


class TestDeleteCourse:
    @pytest.mark.asyncio
    async def test_soft_delete(self, client: AsyncClient, course, maintenance_headers):
        response = await client.delete(f'/api/v1/courses/{course.id}', headers=maintenance_headers)
        assert response.status_code == 200

        listed = await client.get('/api/v1/courses')
        assert course.id not in [c['id'] for c in listed.json()]

        fetched = await client.get(f'/api/v1/courses/{course.id}')
        assert fetched.status_code == 200
        assert fetched.json()['is_active'] is False

    @pytest.mark.asyncio
    async def test_delete_keeps_enrollments(self, client: AsyncClient, enrolled_in_course, course, admin_headers, maintenance_headers):
        await client.delete(f'/api/v1/courses/{course.id}', headers=maintenance_headers)

        response = await client.get(f'/api/v1/students/{enrolled_in_course.id}', headers=admin_headers)
        assert [e['course_id'] for e in response.json()['enrolled_courses']] == [course.id]
