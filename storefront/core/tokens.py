from rest_framework_simplejwt.tokens import RefreshToken


def issue_tokens(user):
    """Refresh/access pair carrying the user's role and phone as claims"""
    refresh = RefreshToken.for_user(user)
    refresh['role'] = user.role
    refresh['phone'] = user.phone
    return {
        'access': str(refresh.access_token),
        'refresh': str(refresh),
    }
