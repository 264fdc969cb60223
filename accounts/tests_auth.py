"""
Auth and RBAC tests:
- First-admin setup only while no users exist
- Login sets the DB-backed session cookie; logout drops it
- Portal checks and role-gated admin/teacher endpoints
- Language preference drives bilingual business messages
"""
from datetime import timedelta

from django.conf import settings
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import AuthSession, User
from core.testing import make_admin, make_teacher, make_teacher_user


class SetupTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_first_admin_created_and_logged_in(self):
        res = self.client.post("/api/admin/setup", {
            "email": "Boss@Test.local", "name": "Boss", "password": "pass12345",
        }, format="json")
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["user"]["role"], User.ROLE_ADMIN)
        self.assertIn(settings.AUTH_SESSION_COOKIE, res.cookies)
        self.assertEqual(self.client.get("/api/admin/auth/me").status_code, 200)

    def test_setup_closed_once_users_exist(self):
        make_admin()
        res = self.client.post("/api/admin/setup", {
            "email": "late@test.local", "name": "Late", "password": "pass12345",
        }, format="json")
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["redirectTo"], "/admin/login")


class LoginTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = make_admin()

    def _login(self, **extra):
        payload = {"email": "ADMIN@test.local", "password": "pass12345"}
        payload.update(extra)
        return self.client.post("/api/admin/auth/login", payload, format="json")

    def test_login_sets_cookie_session(self):
        res = self._login(next="/admin/students")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["redirectTo"], "/admin/students")
        token = res.cookies[settings.AUTH_SESSION_COOKIE].value
        self.assertTrue(AuthSession.objects.filter(token=token, user=self.admin).exists())
        me = self.client.get("/api/admin/auth/me")
        self.assertEqual(me.data["user"]["email"], "admin@test.local")

    def test_open_redirect_rejected(self):
        res = self._login(next="//evil.example")
        self.assertEqual(res.data["redirectTo"], "/admin")

    def test_wrong_password(self):
        res = self._login(password="nope12345")
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.data["ok"], False)

    def test_logout_deletes_session(self):
        self._login()
        res = self.client.post("/api/admin/auth/logout")
        self.assertEqual(res.status_code, 200)
        self.assertFalse(AuthSession.objects.exists())
        self.assertEqual(self.client.get("/api/admin/auth/me").status_code, 401)

    def test_expired_session_is_rejected(self):
        self._login()
        AuthSession.objects.update(expires_at=timezone.now() - timedelta(minutes=1))
        self.assertEqual(self.client.get("/api/admin/auth/me").status_code, 401)
        self.assertFalse(AuthSession.objects.exists())

    def test_admin_cannot_enter_teacher_portal_without_profile(self):
        res = self._login(portal="teacher")
        self.assertEqual(res.status_code, 403)


class RoleAccessTests(TestCase):
    def setUp(self):
        self.teacher_client = APIClient()
        self.teacher_client.force_authenticate(make_teacher_user(make_teacher("Mr. Zhao")))
        self.admin_client = APIClient()
        self.admin_client.force_authenticate(make_admin())

    def test_teacher_cannot_use_admin_api(self):
        res = self.teacher_client.get("/api/admin/students")
        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.data["code"], "permission_denied")

    def test_admin_cannot_use_teacher_api(self):
        self.assertEqual(self.admin_client.get("/api/teacher/sessions").status_code, 403)

    def test_anonymous_rejected(self):
        self.assertEqual(APIClient().get("/api/admin/students").status_code, 401)

    def test_health_is_public(self):
        res = APIClient().get("/api/health/")
        self.assertEqual(res.status_code, 200)


class LanguageTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = make_admin()
        self.client.force_authenticate(self.admin)

    def test_set_language(self):
        res = self.client.post("/api/admin/language", {"lang": "ZH"}, format="json")
        self.assertEqual(res.data, {"ok": True, "lang": "ZH"})
        self.admin.refresh_from_db()
        self.assertEqual(self.admin.language, "ZH")

    def test_invalid_language(self):
        res = self.client.post("/api/admin/language", {"lang": "FR"}, format="json")
        self.assertEqual(res.status_code, 409)

    def test_change_password(self):
        res = self.client.post("/api/admin/auth/change-password",
                               {"currentPassword": "pass12345", "newPassword": "newpass123"}, format="json")
        self.assertEqual(res.status_code, 200)
        self.admin.refresh_from_db()
        self.assertTrue(self.admin.check_password("newpass123"))
