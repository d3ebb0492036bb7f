"""
Security headers for a JSON-only API.

Usage:
    from venture_os.middleware.security_headers import init_security_headers
    init_security_headers(app)
"""

_HEADERS = {
    # Nothing here renders HTML; lock everything down.
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
}


def init_security_headers(app):
    """Register an after_request hook adding the headers above."""

    @app.after_request
    def _add_security_headers(response):
        for name, value in _HEADERS.items():
            response.headers.setdefault(name, value)
        response.headers.pop("Server", None)
        return response
