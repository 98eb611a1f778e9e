from django.contrib.auth.models import Group
from django.contrib.auth.models import Permission
from django.core.management.base import BaseCommand
from django.utils.translation import gettext as _

from hr_connect.users.api.permissions import ROLE_ADMIN
from hr_connect.users.api.permissions import ROLE_EMPLOYEE
from hr_connect.users.api.permissions import ROLE_MANAGER

FULL_ACTIONS = ("add", "change", "delete", "view")
MANAGE_ACTIONS = ("add", "change", "view")
READ_ACTIONS = ("view",)

TARGET_APPS = ("chat", "notifications", "org", "users")

# role -> app label -> actions on every model of that app
ROLE_APP_ACTIONS = {
    ROLE_MANAGER: {
        "chat": FULL_ACTIONS,
        "notifications": MANAGE_ACTIONS,
        "org": FULL_ACTIONS,
        "users": MANAGE_ACTIONS,
    },
    ROLE_EMPLOYEE: {
        "chat": ("add", "view"),
        "notifications": READ_ACTIONS,
        "org": READ_ACTIONS,
        "users": READ_ACTIONS,
    },
}


class Command(BaseCommand):
    help = _("Create the Admin, Manager and Employee groups with their permissions")

    def handle(self, *args, **options):
        perms = Permission.objects.filter(content_type__app_label__in=TARGET_APPS)
        roles = {ROLE_ADMIN: list(perms)}
        for role_name, app_rules in ROLE_APP_ACTIONS.items():
            roles[role_name] = [
                perm
                for perm in perms.select_related("content_type")
                if perm.codename.split("_", 1)[0]
                in app_rules.get(perm.content_type.app_label, ())
            ]

        for role_name, role_perms in roles.items():
            group, _created = Group.objects.get_or_create(name=role_name)
            group.permissions.set(role_perms)
            msg = f"Ensured group '{role_name}' with permissions ({len(role_perms)})"
            self.stdout.write(self.style.SUCCESS(msg))
        self.stdout.write(self.style.SUCCESS("RBAC setup complete"))
