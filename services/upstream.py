import requests
from flask import current_app

from errors import UpstreamError, UpstreamTimeout


def call_upstream(method, url, service, error_cls=UpstreamError, **kwargs):
    """Send one request to a third-party API and return the 2xx response.

    Provider error bodies are logged here and never handed back to the
    caller, so nothing the provider says ends up in a client response.
    """
    kwargs.setdefault("timeout", current_app.config["UPSTREAM_TIMEOUT"])
    try:
        response = requests.request(method, url, **kwargs)
    except requests.Timeout:
        current_app.logger.error("%s request timed out: %s %s", service, method, url)
        raise UpstreamTimeout()
    except requests.RequestException as exc:
        current_app.logger.error("%s request failed: %s", service, exc)
        raise error_cls()

    if not response.ok:
        current_app.logger.error(
            "%s responded %s: %s", service, response.status_code, response.text
        )
        raise error_cls()
    return response


def require_setting(name, service):
    value = current_app.config.get(name)
    if not value:
        current_app.logger.error("%s is not configured: %s missing", service, name)
        raise UpstreamError()
    return value
