from __future__ import annotations

import logging
import re

from django.utils.deprecation import MiddlewareMixin

from mr_core.common.api.exceptions import ensure_request_id

logger = logging.getLogger(__name__)

_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9\-_.]{1,64}$")


class RequestIdMiddleware(MiddlewareMixin):
    """
    Attaches request.request_id (client supplied X-Request-Id when sane, else generated)
    and echoes it back on the response so error envelopes can be correlated with logs.
    """

    HEADER = "X-Request-Id"
    META_KEY = "HTTP_X_REQUEST_ID"

    def process_request(self, request):
        incoming = request.META.get(self.META_KEY, "")
        if incoming and _SAFE_REQUEST_ID.match(incoming):
            request.request_id = incoming
        else:
            ensure_request_id(request)
        return None

    def process_response(self, request, response):
        rid = getattr(request, "request_id", None)
        if rid:
            response[self.HEADER] = rid

        if response.status_code >= 500:
            logger.error("%s %s -> %s (request_id=%s)", request.method, request.path, response.status_code, rid)
        return response
