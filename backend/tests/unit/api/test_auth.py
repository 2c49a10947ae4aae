"""
Unit Tests for Authentication API Endpoints
"""
import pytest
from httpx import AsyncClient
from faker import Faker

from aaghaaz.api.v1.endpoints import auth as auth_endpoints
from aaghaaz.core import two_factor

fake = Faker()

STAFF_PASSWORD = 'staffpass123'
STUDENT_PASSWORD = 'studentpass123'


def registration_payload(**overrides):
    data = {
        'first_name': fake.first_name(),
        'last_name': fake.last_name(),
        'email': fake.unique.email(),
        'password': 'secret1',
        'cnic': fake.numerify('#############'),
        'expertise': ['Mathematics'],
        'qualification': 'Masters',
        'role': 'instructor',
    }
    data.update(overrides)
    return data


async def login(client: AsyncClient, email: str, password: str):
    return await client.post('/api/v1/auth/login', json={'email': email, 'password': password})


class TestRegistration:
    """Test staff registration endpoint"""

    @pytest.mark.asyncio
    async def test_register_then_login(self, client: AsyncClient):
        """Registering a@x.com returns a session and the same credentials log in"""
        payload = registration_payload(email='a@x.com', role='admin')

        response = await client.post('/api/v1/auth/register', json=payload)

        assert response.status_code == 201
        data = response.json()
        assert data['access_token']
        assert data['token_type'] == 'bearer'
        assert data['user']['email'] == 'a@x.com'
        assert data['user']['role'] == 'admin'
        assert 'hashed_password' not in data['user']
        assert 'two_factor_secret' not in data['user']

        response = await login(client, 'a@x.com', 'secret1')
        assert response.status_code == 200
        assert response.json()['user']['role'] == 'admin'

    @pytest.mark.asyncio
    async def test_register_normalises_email(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/register', json=registration_payload(email='Mixed@Example.COM'))

        assert response.status_code == 201
        assert response.json()['user']['email'] == 'mixed@example.com'

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, client: AsyncClient, admin_user):
        response = await client.post('/api/v1/auth/register', json=registration_payload(email=admin_user.email))

        assert response.status_code == 400
        assert 'already registered' in response.json()['detail'].lower()

    @pytest.mark.asyncio
    async def test_register_email_used_by_student(self, client: AsyncClient, enrolled_student):
        response = await client.post('/api/v1/auth/register', json=registration_payload(email=enrolled_student.email))
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_register_duplicate_cnic(self, client: AsyncClient, admin_user):
        response = await client.post('/api/v1/auth/register', json=registration_payload(cnic=admin_user.cnic))

        assert response.status_code == 400
        assert response.json()['detail'] == 'CNIC already registered'

    @pytest.mark.asyncio
    async def test_register_cnic_race_reports_cnic(self, client: AsyncClient, admin_user, monkeypatch):
        """The pre-insert check passes, the insert collides on CNIC"""
        taken_cnic = admin_user.cnic
        real_taken_field = auth_endpoints.taken_field
        checks = []

        async def check_after_insert(db, email, cnic):
            checks.append(email)
            if len(checks) == 1:
                return None
            return await real_taken_field(db, email, cnic)

        monkeypatch.setattr(auth_endpoints, 'taken_field', check_after_insert)
        response = await client.post('/api/v1/auth/register', json=registration_payload(cnic=taken_cnic))

        assert response.status_code == 400
        assert response.json()['detail'] == 'CNIC already registered'
        assert len(checks) == 2

    @pytest.mark.asyncio
    async def test_register_short_password(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/register', json=registration_payload(password='12345'))
        assert response.status_code == 422

    @pytest.mark.asyncio
    @pytest.mark.parametrize('missing', ['role', 'cnic', 'expertise', 'qualification'])
    async def test_register_missing_required_field(self, client: AsyncClient, missing):
        payload = registration_payload()
        payload.pop(missing)

        response = await client.post('/api/v1/auth/register', json=payload)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_register_student_role_rejected(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/register', json=registration_payload(role='student'))
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_register_malformed_cnic(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/register', json=registration_payload(cnic='12345-1234567-1'))
        assert response.status_code == 422


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_success(self, client: AsyncClient, maintenance_user):
        response = await login(client, maintenance_user.email, STAFF_PASSWORD)

        assert response.status_code == 200
        data = response.json()
        assert data['user']['role'] == 'maintenance_office'
        assert 'requires2FA' not in data

    @pytest.mark.asyncio
    async def test_login_is_case_insensitive_on_email(self, client: AsyncClient, admin_user):
        response = await login(client, admin_user.email.upper(), STAFF_PASSWORD)
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_match(self, client: AsyncClient, admin_user):
        wrong = await login(client, admin_user.email, 'wrongpass')
        unknown = await login(client, 'ghost@example.com', STAFF_PASSWORD)

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json()
        assert wrong.json()['detail'] == 'Invalid credentials'

    @pytest.mark.asyncio
    async def test_student_cannot_use_staff_login(self, client: AsyncClient, enrolled_student):
        response = await login(client, enrolled_student.email, STUDENT_PASSWORD)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_login_response_is_not_cached(self, client: AsyncClient, admin_user):
        response = await login(client, admin_user.email, STAFF_PASSWORD)
        assert response.headers['cache-control'] == 'no-store'


class TestTwoFactorFlow:
    @pytest.mark.asyncio
    async def test_full_two_factor_flow(self, client: AsyncClient, admin_user, admin_headers):
        """Setup, confirm, then login needs the second step"""
        setup = await client.post('/api/v1/auth/2fa/setup', headers=admin_headers)
        assert setup.status_code == 200
        secret = setup.json()['secret']
        assert setup.json()['otpauth_url'].startswith('otpauth://totp/')
        assert setup.json()['qr_code'].startswith('data:image/png;base64,')

        # Not enforced until confirmed
        response = await login(client, admin_user.email, STAFF_PASSWORD)
        assert 'access_token' in response.json()

        verify = await client.post(
            '/api/v1/auth/2fa/verify',
            json={'code': two_factor.current_code(secret)},
            headers=admin_headers,
        )
        assert verify.status_code == 200

        response = await login(client, admin_user.email, STAFF_PASSWORD)
        assert response.status_code == 200
        data = response.json()
        assert data['requires2FA'] is True
        assert 'access_token' not in data
        pending_token = data['pending_token']

        # The pending token is not a session
        profile = await client.get('/api/v1/auth/profile', headers={'Authorization': f'Bearer {pending_token}'})
        assert profile.status_code == 401
        assert profile.json()['detail'] == 'Invalid token'

        response = await client.post('/api/v1/auth/login/verify-2fa', json={
            'pending_token': pending_token,
            'code': two_factor.current_code(secret),
        })
        assert response.status_code == 200
        access_token = response.json()['access_token']

        profile = await client.get('/api/v1/auth/profile', headers={'Authorization': f'Bearer {access_token}'})
        assert profile.status_code == 200
        assert profile.json()['two_factor_enabled'] is True

    @pytest.mark.asyncio
    async def test_verify_setup_with_wrong_code(self, client: AsyncClient, admin_headers):
        await client.post('/api/v1/auth/2fa/setup', headers=admin_headers)
        response = await client.post('/api/v1/auth/2fa/verify', json={'code': 'abcdef'}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()['detail'] == 'Invalid verification code'

    @pytest.mark.asyncio
    async def test_verify_without_setup(self, client: AsyncClient, admin_headers):
        response = await client.post('/api/v1/auth/2fa/verify', json={'code': '123456'}, headers=admin_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_setup_refused_while_enabled(self, client: AsyncClient, staff_factory, make_headers):
        user = await staff_factory(two_factor_active=True)
        response = await client.post('/api/v1/auth/2fa/setup', headers=make_headers(user))
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_login_verify_with_wrong_code(self, client: AsyncClient, staff_factory):
        user = await staff_factory(two_factor_active=True)
        pending_token = (await login(client, user.email, STAFF_PASSWORD)).json()['pending_token']

        response = await client.post('/api/v1/auth/login/verify-2fa', json={
            'pending_token': pending_token,
            'code': 'abcdef',
        })
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_login_verify_with_full_token(self, client: AsyncClient, staff_factory, make_headers):
        user = await staff_factory(two_factor_active=True)
        full_token = make_headers(user)['Authorization'].split(' ', 1)[1]

        response = await client.post('/api/v1/auth/login/verify-2fa', json={
            'pending_token': full_token,
            'code': two_factor.current_code(user.two_factor_secret),
        })
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_disable_requires_password(self, client: AsyncClient, staff_factory, make_headers):
        user = await staff_factory(two_factor_active=True)
        headers = make_headers(user)

        response = await client.post('/api/v1/auth/2fa/disable', json={'password': 'wrongpass'}, headers=headers)
        assert response.status_code == 400
        assert user.two_factor_enabled is True

        response = await client.post('/api/v1/auth/2fa/disable', json={'password': STAFF_PASSWORD}, headers=headers)
        assert response.status_code == 200

        response = await login(client, user.email, STAFF_PASSWORD)
        assert 'access_token' in response.json()


class TestProfile:
    @pytest.mark.asyncio
    async def test_staff_profile(self, client: AsyncClient, instructor_user, instructor_headers):
        response = await client.get('/api/v1/auth/profile', headers=instructor_headers)

        assert response.status_code == 200
        data = response.json()
        assert data['id'] == instructor_user.id
        assert data['role'] == 'instructor'
        assert 'hashed_password' not in data

    @pytest.mark.asyncio
    async def test_student_profile(self, client: AsyncClient, enrolled_student, student_headers):
        response = await client.get('/api/v1/auth/profile', headers=student_headers)

        assert response.status_code == 200
        data = response.json()
        assert data['roll_id'] == enrolled_student.roll_id
        assert data['role'] == 'student'
        assert data['status'] == 'Enrolled'

    @pytest.mark.asyncio
    async def test_update_profile(self, client: AsyncClient, admin_headers):
        response = await client.put('/api/v1/auth/profile', json={
            'first_name': 'Ayesha',
            'location': {'country': 'Pakistan', 'city': 'Lahore'},
        }, headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data['first_name'] == 'Ayesha'
        assert data['location']['city'] == 'Lahore'

    @pytest.mark.asyncio
    async def test_update_profile_ignores_other_kind_fields(self, client: AsyncClient, student_headers):
        response = await client.put('/api/v1/auth/profile', json={
            'guardian_name': 'Imran',
            'expertise': ['Physics'],
        }, headers=student_headers)

        assert response.status_code == 200
        data = response.json()
        assert data['guardian_name'] == 'Imran'
        assert 'expertise' not in data


class TestChangePassword:
    @pytest.mark.asyncio
    async def test_wrong_current_password(self, client: AsyncClient, admin_user, admin_headers):
        response = await client.put('/api/v1/auth/change-password', json={
            'current_password': 'wrongpass',
            'new_password': 'newsecret1',
        }, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()['detail'] == 'Current password is incorrect'
        assert (await login(client, admin_user.email, STAFF_PASSWORD)).status_code == 200

    @pytest.mark.asyncio
    async def test_change_password(self, client: AsyncClient, admin_user, admin_headers):
        response = await client.put('/api/v1/auth/change-password', json={
            'current_password': STAFF_PASSWORD,
            'new_password': 'newsecret1',
        }, headers=admin_headers)

        assert response.status_code == 200
        assert (await login(client, admin_user.email, STAFF_PASSWORD)).status_code == 401
        assert (await login(client, admin_user.email, 'newsecret1')).status_code == 200

    @pytest.mark.asyncio
    async def test_new_password_too_short(self, client: AsyncClient, admin_headers):
        response = await client.put('/api/v1/auth/change-password', json={
            'current_password': STAFF_PASSWORD,
            'new_password': 'abc',
        }, headers=admin_headers)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_student_change_password(self, client: AsyncClient, enrolled_student, student_headers):
        response = await client.put('/api/v1/auth/change-password', json={
            'current_password': STUDENT_PASSWORD,
            'new_password': 'newsecret1',
        }, headers=student_headers)

        assert response.status_code == 200
        login_response = await client.post('/api/v1/students/login', json={
            'email': enrolled_student.email,
            'password': 'newsecret1',
        })
        assert login_response.status_code == 200


class TestDeleteAccount:
    @pytest.mark.asyncio
    async def test_delete_requires_password(self, client: AsyncClient, admin_user, admin_headers):
        response = await client.request(
            'DELETE', '/api/v1/auth/account', json={'password': 'wrongpass'}, headers=admin_headers
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_account(self, client: AsyncClient, admin_user, admin_headers):
        response = await client.request(
            'DELETE', '/api/v1/auth/account', json={'password': STAFF_PASSWORD}, headers=admin_headers
        )
        assert response.status_code == 200

        assert (await login(client, admin_user.email, STAFF_PASSWORD)).status_code == 401
        assert (await client.get('/api/v1/auth/profile', headers=admin_headers)).status_code == 401
