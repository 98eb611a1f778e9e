from django.db import models


class Department(models.Model):
    """An organisational unit; each active one gets its own chat group."""

    name = models.CharField(max_length=150, unique=True, db_index=True)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.name

    @property
    def chat_group_description(self) -> str:
        return f"Group chat for {self.name} department"

    def active_member_ids(self) -> list[int]:
        return list(
            self.users.filter(is_active=True).order_by("id").values_list("id", flat=True)
        )
