"""
URL configuration for authentication app.

URL structure:
    /api/v1/auth/register/        - Account registration
    /api/v1/auth/login/           - Email/password login (JWT pair)
    /api/v1/auth/token/refresh/   - Refresh access token
    /api/v1/auth/logout/          - Blacklist refresh token
    /api/v1/auth/profile/         - Current user
"""

from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from authentication.views import LoginView, LogoutView, ProfileView, RegisterView

app_name = "authentication"

urlpatterns = [
    path("register/", RegisterView.as_view(), name="register"),
    path("login/", LoginView.as_view(), name="login"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
    path("logout/", LogoutView.as_view(), name="logout"),
    path("profile/", ProfileView.as_view(), name="profile"),
]
