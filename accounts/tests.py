from django.contrib.auth import get_user_model
from django.test import RequestFactory, TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from .permissions import IsAdminOnly, IsAdminOrStaff, IsInternalOrReadOnly

User = get_user_model()


# -------------------------
# User Manager Tests
# -------------------------
class UserManagerTests(TestCase):
    def test_create_user_normalizes_email(self):
        user = User.objects.create_user(email="Unit5@Franquia.TEST", password="pass123")

        self.assertEqual(user.email, "unit5@franquia.test")
        self.assertEqual(user.role, "FRANCHISEE")
        self.assertFalse(user.is_staff)
        self.assertTrue(user.check_password("pass123"))

    def test_create_user_requires_email(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email="", password="pass123")

    def test_create_superuser_is_admin(self):
        user = User.objects.create_superuser(email="root@franquia.test", password="pass123")

        self.assertTrue(user.is_superuser)
        self.assertEqual(user.role, "ADMIN")
        self.assertTrue(user.is_internal)

    def test_franchisee_is_not_internal(self):
        user = User.objects.create_user(email="unit@franquia.test", unit_code=5)
        self.assertFalse(user.is_internal)


# -------------------------
# Permission Tests
# -------------------------
class RolePermissionTests(TestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.admin = User.objects.create_user(email="admin@franquia.test", role="ADMIN")
        self.staff = User.objects.create_user(email="staff@franquia.test", role="STAFF")
        self.franchisee = User.objects.create_user(email="unit@franquia.test", unit_code=1)
        self.superuser = User.objects.create_superuser(
            email="root@franquia.test", password="x", role="FRANCHISEE"
        )

    def allowed(self, permission, user, method="get"):
        request = getattr(self.factory, method)("/")
        request.user = user
        return permission().has_permission(request, None)

    def test_admin_only(self):
        self.assertTrue(self.allowed(IsAdminOnly, self.admin))
        self.assertFalse(self.allowed(IsAdminOnly, self.staff))
        self.assertFalse(self.allowed(IsAdminOnly, self.franchisee))

    def test_superuser_bypasses_role(self):
        self.assertTrue(self.allowed(IsAdminOnly, self.superuser))

    def test_admin_or_staff(self):
        self.assertTrue(self.allowed(IsAdminOrStaff, self.staff))
        self.assertFalse(self.allowed(IsAdminOrStaff, self.franchisee))

    def test_inactive_user_is_rejected(self):
        self.admin.is_active = False
        self.assertFalse(self.allowed(IsAdminOnly, self.admin))

    def test_franchisee_can_only_read(self):
        self.assertTrue(self.allowed(IsInternalOrReadOnly, self.franchisee, "get"))
        self.assertFalse(self.allowed(IsInternalOrReadOnly, self.franchisee, "post"))
        self.assertTrue(self.allowed(IsInternalOrReadOnly, self.staff, "post"))


# -------------------------
# Token Tests
# -------------------------
class TokenTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(email="unit@franquia.test", password="TestPass123!")

    def test_obtain_token_with_email(self):
        response = self.client.post(
            reverse("token-obtain"),
            {"email": "unit@franquia.test", "password": "TestPass123!"},
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("access", response.data)
        self.assertIn("refresh", response.data)

    def test_inactive_user_cannot_obtain_token(self):
        self.user.is_active = False
        self.user.save()

        response = self.client.post(
            reverse("token-obtain"),
            {"email": "unit@franquia.test", "password": "TestPass123!"},
        )

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
