"""
Custom User model with roles, per-user language and DB-backed auth sessions.
"""
import secrets
from datetime import timedelta

from django.conf import settings
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models
from django.utils import timezone

from core.i18n import LANGUAGE_CHOICES, LANG_BILINGUAL


class UserManager(BaseUserManager):
    """Custom user manager where email is the unique identifier"""
    use_in_migrations = True

    def create_user(self, email, password=None, **extra_fields):
        """Create and save a user; email stored lower-case."""
        if not email:
            raise ValueError('The Email field must be set')
        email = self.normalize_email(email).strip().lower()
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """Create and save a superuser"""
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('role', User.ROLE_ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Back-office user. Email-based login (no username).
    TEACHER users are linked to an academics.Teacher profile.
    """
    ROLE_ADMIN = 'ADMIN'
    ROLE_TEACHER = 'TEACHER'
    ROLE_STUDENT = 'STUDENT'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_TEACHER, 'Teacher'),
        (ROLE_STUDENT, 'Student'),
    ]

    email = models.EmailField(unique=True, db_index=True)
    name = models.CharField(max_length=255)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_ADMIN, db_index=True)
    language = models.CharField(max_length=16, choices=LANGUAGE_CHOICES, default=LANG_BILINGUAL)
    teacher = models.OneToOneField(
        'academics.Teacher',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='user',
    )

    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    date_joined = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['name']

    class Meta:
        db_table = 'users'
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        ordering = ['-date_joined']

    def __str__(self):
        return f"{self.name} ({self.email})"

    @property
    def is_admin(self):
        return self.role == self.ROLE_ADMIN


def _new_token():
    return secrets.token_hex(32)


def _default_expiry():
    return timezone.now() + timedelta(days=settings.AUTH_SESSION_DAYS)


class AuthSession(models.Model):
    """Opaque session token carried in an HTTP-only cookie."""
    token = models.CharField(max_length=64, unique=True, default=_new_token)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='auth_sessions')
    expires_at = models.DateTimeField(default=_default_expiry, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'auth_sessions'
        verbose_name = 'Auth Session'
        verbose_name_plural = 'Auth Sessions'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.user_id} until {self.expires_at:%Y-%m-%d}"

    @property
    def is_expired(self):
        return self.expires_at < timezone.now()
