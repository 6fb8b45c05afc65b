from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken, AuthenticationFailed
from Administration.models import StaffUser

class CustomJWTAuthentication(JWTAuthentication):
    def get_user(self, validated_token):
        """
        Attempts to find and return a staff user using the given validated token.

        Tokens carry the role the user had at login; a token issued before a
        role change is rejected so that demoted staff lose admin rights at once.
        """
        user_id = validated_token.get('user_id')
        role = validated_token.get('role')

        if not user_id:
            raise InvalidToken('Token contained no recognizable user identification')

        try:
            user = StaffUser.objects.get(id=user_id)
        except StaffUser.DoesNotExist:
            raise AuthenticationFailed('User not found', code='user_not_found')

        if not user.is_active:
            raise AuthenticationFailed('User is inactive', code='user_inactive')

        if role and role != user.role:
            raise InvalidToken('Token role no longer matches the user; please log in again')

        return user
