"""
Request ID middleware for request tracing and logging
"""
import re
import uuid

_VALID_REQUEST_ID = re.compile(r'^[A-Za-z0-9._-]{1,64}$')


class RequestIdMiddleware:
    """
    WSGI middleware to add unique request ID to each request.
    An incoming X-Request-ID is reused when it looks sane, so a proxy's
    id shows up in our logs as well.
    """

    def __init__(self, app):
        self.app = app

    def __call__(self, environ, start_response):
        incoming = environ.get('HTTP_X_REQUEST_ID', '')
        request_id = incoming if _VALID_REQUEST_ID.match(incoming) else uuid.uuid4().hex

        environ['request_id'] = request_id

        def custom_start_response(status, headers, exc_info=None):
            headers.append(('X-Request-ID', request_id))
            return start_response(status, headers, exc_info)

        return self.app(environ, custom_start_response)
