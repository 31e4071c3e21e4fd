import hmac
from functools import wraps
from flask import request, current_app

from feed_be.exceptions import AuthenticationException, AuthorizationException, InternalServerErrorException


def service_token_required(f):
    """
    Decorator to protect admin routes with the service API token.
    Expects the token in the 'X-Service-Token' header.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = request.headers.get('X-Service-Token')
        if not token:
            current_app.logger.warning("Service token missing for protected route.")
            raise AuthenticationException()

        expected_token = current_app.config.get('SERVICE_API_TOKEN')
        if not expected_token:
            current_app.logger.error("SERVICE_API_TOKEN is not configured in the application.")
            raise InternalServerErrorException("Service token not configured.")

        if not hmac.compare_digest(token, expected_token):
            current_app.logger.warning("Invalid service token received.")
            # A token was sent but it is wrong
            raise AuthorizationException("Invalid service token.")
        return f(*args, **kwargs)
    return decorated_function
