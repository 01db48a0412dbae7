from django.urls import path

from .views import (
    AdminUserListView,
    LoginView,
    MeView,
    ReactivateUserView,
    RegisterView,
    SuspendUserView,
)

urlpatterns = [
    # Authentication & registration
    path("auth/register/", RegisterView.as_view(), name="register"),
    path("auth/login/", LoginView.as_view(), name="login"),
    path("me/", MeView.as_view(), name="me"),

    # Admin account management
    path("admin/users/", AdminUserListView.as_view(), name="admin-users"),
    path("admin/users/<int:pk>/suspend/", SuspendUserView.as_view(), name="admin-user-suspend"),
    path("admin/users/<int:pk>/reactivate/", ReactivateUserView.as_view(), name="admin-user-reactivate"),
]
