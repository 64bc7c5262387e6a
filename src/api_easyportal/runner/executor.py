"""Request binding and execution.

Binds a value mapping into an endpoint's path, query string and JSON body,
performs the call with requests, and normalizes whatever happens into an
ExecutionOutcome. Nothing here raises for a failed request.
"""

import json
import logging
import time
from typing import Any
from urllib.parse import urlencode

import requests
from pydantic import BaseModel

from api_easyportal.config import RequestConfig
from api_easyportal.parser.base import BODY_METHODS, EndpointDescriptor
from api_easyportal.parser.schema import flatten_schema

logger = logging.getLogger(__name__)


class ExecutionOutcome(BaseModel):
    """Normalized result of one HTTP call."""

    success: bool
    status: int  # 0 when no response was received
    elapsed_ms: int
    body: Any = None  # parsed JSON, or raw text
    is_transport_error: bool = False
    url: str = ""
    method: str = ""

    def body_text(self) -> str:
        """The full body as text: JSON re-serialized compactly, text as-is."""
        if isinstance(self.body, str):
            return self.body
        return json.dumps(self.body, ensure_ascii=False, separators=(",", ":"))


class PreparedRequest(BaseModel):
    method: str
    url: str
    headers: dict[str, str]
    body: str | None = None


def build_url(endpoint: EndpointDescriptor, base_url: str, values: dict[str, str]) -> str:
    """Base URL + path template, with path placeholders and query string filled in."""
    url = (base_url[:-1] if base_url.endswith("/") else base_url) + endpoint.path

    # Plain text replacement, values are not percent-encoded
    for p in endpoint.path_params:
        url = url.replace("{" + p.name + "}", values.get(p.name) or "")

    query = [(p.name, values[p.name]) for p in endpoint.query_params if values.get(p.name)]
    if query:
        url += "?" + urlencode(query)
    return url


def build_body(endpoint: EndpointDescriptor, values: dict[str, str]) -> dict[str, str] | None:
    """JSON body for POST/PUT/PATCH endpoints that declare one, else None.

    Keys that name a path parameter are never sent. When the body schema
    yields no fields every remaining key is sent; otherwise only schema fields.
    """
    if endpoint.http_method not in BODY_METHODS or not endpoint.has_request_body:
        return None

    path_names = {p.name for p in endpoint.path_params}
    body_fields = {f.name for f in flatten_schema(endpoint.request_body_schema, endpoint.schema_definitions)}

    return {
        key: value for key, value in values.items()
        if key not in path_names and (not body_fields or key in body_fields)
    }


def build_headers(config: RequestConfig) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    for entry in config.headers:
        headers[entry.key] = entry.value
    if config.token:
        for key in [k for k in headers if k.lower() == "authorization"]:
            del headers[key]
        headers["Authorization"] = f"Bearer {config.token}"
    return headers


def prepare_request(endpoint: EndpointDescriptor, config: RequestConfig, values: dict[str, str]) -> PreparedRequest:
    body = build_body(endpoint, values)
    return PreparedRequest(
        method=endpoint.http_method,
        url=build_url(endpoint, config.base_url, values),
        headers=build_headers(config),
        body=json.dumps(body, ensure_ascii=False) if body is not None else None,
    )


class RequestExecutor:
    """Executes endpoint calls against one configuration snapshot."""

    def __init__(self, config: RequestConfig, session: requests.Session | None = None):
        self.config = config
        self.session = session or requests.Session()

    def execute(self, endpoint: EndpointDescriptor, values: dict[str, str]) -> ExecutionOutcome:
        """Perform one request. Failures are returned, never raised."""
        request = prepare_request(endpoint, self.config, values)
        logger.debug("%s %s", request.method, request.url)

        start = time.perf_counter()
        try:
            response = self.session.request(
                request.method,
                request.url,
                headers=request.headers,
                data=request.body.encode("utf-8") if request.body is not None else None,
                timeout=self.config.timeout,
            )
        except (requests.exceptions.RequestException, ValueError) as e:
            # UnicodeEncodeError from non-latin-1 header values is a ValueError
            elapsed = _elapsed_ms(start)
            message = _describe_transport_error(e)
            logger.warning("%s %s failed: %s", request.method, request.url, message)
            return ExecutionOutcome(
                success=False,
                status=0,
                elapsed_ms=elapsed,
                body=message,
                is_transport_error=True,
                url=request.url,
                method=request.method,
            )
        elapsed = _elapsed_ms(start)

        return ExecutionOutcome(
            success=200 <= response.status_code <= 299,
            status=response.status_code,
            elapsed_ms=elapsed,
            body=_parse_body(response),
            url=request.url,
            method=request.method,
        )


def _elapsed_ms(start: float) -> int:
    return int(round((time.perf_counter() - start) * 1000))


def _parse_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _describe_transport_error(error: Exception) -> str:
    # SSLError and ConnectTimeout are ConnectionError subclasses; check them first
    if isinstance(error, requests.exceptions.SSLError):
        return f"Request blocked: TLS/SSL handshake was rejected ({error})"
    if isinstance(error, requests.exceptions.Timeout):
        return f"Request timed out ({error})"
    if isinstance(error, requests.exceptions.ConnectionError):
        return f"Network error: could not connect to the server ({error})"
    if isinstance(error, (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema,
                          requests.exceptions.InvalidSchema)):
        return f"Invalid request URL ({error})"
    if isinstance(error, UnicodeError):
        return f"Request could not be encoded: header or URL contains unsupported characters ({error})"
    return f"Request failed ({error})"
