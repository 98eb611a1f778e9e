"""drf-spectacular post-processing: one tag per feature area.

Router-generated operations would otherwise be tagged by URL segment, which
splits chat and notifications across several sections in Swagger UI.
"""

from __future__ import annotations

from typing import Any

# Method names that contain operations in the OpenAPI path item
_HTTP_METHODS = {"get", "post", "put", "patch", "delete", "options", "head"}


PATTERN_TAGS = [
    ("/api/v1/auth/jwt", "Authentication"),
    ("/api/v1/users", "Users"),
    ("/api/v1/messages", "Chat"),
    ("/api/v1/chat-groups", "Chat Groups"),
    ("/api/v1/notifications", "Notifications"),
    ("/api/v1/schema", "Meta"),
]

ALL_TAGS = list(dict.fromkeys(t for _, t in PATTERN_TAGS))


def assign_group_tag(path: str) -> str | None:
    for prefix, tag in PATTERN_TAGS:
        if path.startswith(prefix):
            return tag
    return None


def group_tags(result: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
    """Overwrite every operation's tags with its single feature group."""
    paths = result.get("paths", {})
    for path, path_item in paths.items():
        tag = assign_group_tag(path)
        if not tag:
            continue
        for method, op_obj in path_item.items():
            if method.lower() not in _HTTP_METHODS or not isinstance(op_obj, dict):
                continue
            op_obj["tags"] = [tag]

    existing = {t.get("name") for t in result.get("tags", [])}
    tag_list = result.setdefault("tags", [])
    tag_list.extend({"name": tag} for tag in ALL_TAGS if tag not in existing)
    return result
