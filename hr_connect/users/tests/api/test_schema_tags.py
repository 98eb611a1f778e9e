from drf_spectacular.generators import SchemaGenerator


def test_schema_tag_grouping(db):
    generator = SchemaGenerator()
    schema = generator.get_schema(request=None, public=True)
    paths = schema["paths"]

    expected = {
        "/api/v1/auth/jwt/create/": "Authentication",
        "/api/v1/users/": "Users",
        "/api/v1/messages/history/": "Chat",
        "/api/v1/chat-groups/": "Chat Groups",
        "/api/v1/notifications/": "Notifications",
    }
    for path, tag in expected.items():
        first_op = next(iter(paths[path].values()))
        assert first_op["tags"] == [tag], path
