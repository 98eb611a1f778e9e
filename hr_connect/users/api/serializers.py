from rest_framework import serializers

from hr_connect.users.models import User


class UserSerializer(serializers.ModelSerializer[User]):
    full_name = serializers.CharField(source="name", read_only=True)
    groups = serializers.SlugRelatedField(
        many=True,
        read_only=True,
        slug_field="name",
    )
    id = serializers.IntegerField(read_only=True)
    username = serializers.CharField(read_only=True)
    email = serializers.EmailField(read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "first_name",
            "last_name",
            "full_name",
            "email",
            "department",
            "groups",
        ]
        read_only_fields = ["department"]


class PushTokenSerializer(serializers.Serializer):
    # Empty string unregisters the device.
    push_token = serializers.CharField(max_length=512, allow_blank=True)
