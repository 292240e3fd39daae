from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend


class EmailBackend(ModelBackend):
    """Authenticate by case-insensitive email.

    Deactivated accounts are rejected by ``user_can_authenticate``.
    """

    def authenticate(self, request, username=None, password=None, **kwargs):
        usermodel = get_user_model()
        email = kwargs.get("email", username)
        if not email or password is None:
            return None
        try:
            user = usermodel.objects.get(email__iexact=email.strip())
        except usermodel.DoesNotExist:
            # Run the hasher anyway to keep timing uniform.
            usermodel().set_password(password)
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user

        return None
