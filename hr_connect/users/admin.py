from django.contrib import admin
from django.contrib.auth import admin as auth_admin
from django.utils.translation import gettext_lazy as _

from hr_connect.users.models import User


@admin.register(User)
class UserAdmin(auth_admin.UserAdmin):
    fieldsets = (
        *auth_admin.UserAdmin.fieldsets,
        (_("Organisation"), {"fields": ("department", "push_token")}),
    )
    list_display = ["username", "name", "email", "department", "is_superuser"]
    search_fields = ["name", "username", "email"]
