from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend


class EmailOrUsernameBackend(ModelBackend):
    """Log in with either the e-mail address or the username.

    The JWT create endpoint goes through here, so mobile clients can sign in
    with the address they know.
    """

    def authenticate(self, request, username=None, password=None, **kwargs):
        if username is None or password is None:
            return None
        users = get_user_model().objects
        # E-mail is unique, so an address match takes precedence.
        user = (
            users.filter(email__iexact=username).first()
            or users.filter(username__iexact=username).first()
        )
        if user is None:
            # Same cost as a real check, to not leak which accounts exist.
            get_user_model()().set_password(password)
            return None
        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None
