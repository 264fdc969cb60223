"""
URLs for accounts app (mounted under /api/admin/)
"""
from django.urls import path
from . import views

app_name = 'accounts'

urlpatterns = [
    path('setup', views.setup_view, name='setup'),
    path('auth/login', views.login_view, name='login'),
    path('auth/logout', views.logout_view, name='logout'),
    path('auth/me', views.me_view, name='me'),
    path('auth/change-password', views.change_password_view, name='change-password'),
    path('language', views.language_view, name='language'),
]
