from django.core.management.base import BaseCommand
from django.utils.translation import gettext as _

from hr_connect.chat.services import ensure_department_group
from hr_connect.org.models import Department


class Command(BaseCommand):
    help = _("Create a chat group for every active department and fill it")

    def handle(self, *args, **options):
        count = 0
        for department in Department.objects.filter(is_active=True):
            group = ensure_department_group(department)
            count += 1
            self.stdout.write(
                f"{department.name}: group {group.id} "
                f"({group.members.count()} members)"
            )
        self.stdout.write(self.style.SUCCESS(f"Initialized {count} department groups"))
