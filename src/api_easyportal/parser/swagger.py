"""OpenAPI / Swagger document loading and endpoint catalog building.

Accepts OpenAPI 3.x and Swagger 2.0 documents as JSON (or YAML) text and
turns them into a flat list of EndpointDescriptor.
"""

import json
import logging
from pathlib import Path

import yaml

from api_easyportal.exceptions import EndpointNotFound, SpecInvalid

from .base import EndpointDescriptor, ParameterSpec, SpecDocument

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "post", "put", "delete", "patch")


def load_spec(text: str) -> SpecDocument:
    """Parse raw spec text into a SpecDocument.

    JSON is tried first; YAML is accepted as a fallback. When the text is
    not JSON and the YAML reading has no `paths` mapping, SpecInvalid
    carries the JSON parser's message.
    """
    try:
        doc = json.loads(text)
    except json.JSONDecodeError as e:
        doc = _load_yaml(text)
        if not isinstance(doc, dict) or not isinstance(doc.get("paths"), dict):
            raise SpecInvalid(str(e)) from e

    if not isinstance(doc, dict):
        raise SpecInvalid("Invalid OpenAPI/Swagger Spec: document is not an object")
    if not isinstance(doc.get("paths"), dict):
        raise SpecInvalid("Invalid OpenAPI/Swagger Spec: Missing 'paths'")

    return SpecDocument(
        info=doc.get("info") or {},
        paths=doc["paths"],
        definitions=_find_definitions(doc),
    )


def load_spec_file(file_path: Path) -> SpecDocument:
    """Read a spec file (UTF-8) and parse it."""
    return load_spec(file_path.read_text(encoding="utf-8"))


def build_catalog(doc: SpecDocument) -> list[EndpointDescriptor]:
    """Flatten every (path, method) operation into an EndpointDescriptor."""
    endpoints = []

    for path, methods in doc.paths.items():
        if not isinstance(methods, dict):
            continue
        shared_params = methods.get("parameters") or []

        for method, operation in methods.items():
            if method.lower() not in HTTP_METHODS:
                continue
            operation = operation or {}

            raw_params = _merge_parameters(shared_params, operation.get("parameters") or [])
            has_body, body_schema = _parse_request_body(operation, raw_params)

            endpoints.append(
                EndpointDescriptor(
                    id=f"{method}-{path}",
                    path=path,
                    method=method,
                    summary=operation.get("summary") or operation.get("operationId") or path,
                    parameters=tuple(_parse_parameters(raw_params)),
                    has_request_body=has_body,
                    request_body_schema=body_schema,
                    schema_definitions=doc.definitions,
                    tags=tuple(operation.get("tags") or ()),
                )
            )

    logger.info("Built catalog with %d endpoints", len(endpoints))
    return endpoints


def filter_endpoints(endpoints: list[EndpointDescriptor], search: str) -> list[EndpointDescriptor]:
    """Case-insensitive substring search over path, summary and tags."""
    needle = search.strip().lower()
    if not needle:
        return list(endpoints)
    return [
        ep for ep in endpoints
        if needle in ep.path.lower()
        or needle in ep.summary.lower()
        or any(needle in tag.lower() for tag in ep.tags)
    ]


def find_endpoint(endpoints: list[EndpointDescriptor], key: str) -> EndpointDescriptor:
    """Look up an endpoint by id (`get-/pets`) or by `"GET /pets"`."""
    for ep in endpoints:
        if ep.id == key:
            return ep

    parts = key.split(maxsplit=1)
    if len(parts) == 2:
        method, path = parts
        for ep in endpoints:
            if ep.http_method == method.upper() and ep.path == path:
                return ep

    raise EndpointNotFound(f"No endpoint matches '{key}'")


def _load_yaml(text: str):
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError:
        return None


def _find_definitions(doc: dict) -> dict:
    definitions = doc.get("definitions")
    if isinstance(definitions, dict):
        return definitions
    schemas = (doc.get("components") or {}).get("schemas")
    if isinstance(schemas, dict):
        return schemas
    return {}


def _merge_parameters(shared: list[dict], own: list[dict]) -> list[dict]:
    """Path-level parameters overridden by operation parameters of the same name/location."""
    merged = {}
    for p in list(shared) + list(own):
        if isinstance(p, dict) and "name" in p:
            merged[(p["name"], p.get("in", "query"))] = p
    return list(merged.values())


def _parse_parameters(params: list[dict]) -> list[ParameterSpec]:
    result = []
    for p in params:
        location = p.get("in", "query")
        if location not in ("path", "query"):
            continue
        result.append(
            ParameterSpec(
                name=p["name"],
                location=location,
                required=location == "path" or bool(p.get("required", False)),
                description=p.get("description") or "",
            )
        )
    return result


def _parse_request_body(operation: dict, params: list[dict]) -> tuple[bool, dict | None]:
    # OpenAPI 3.x
    body = operation.get("requestBody")
    if body:
        content = body.get("content") or {}
        if "application/json" in content:
            return True, content["application/json"].get("schema")
        # Fallback: first available schema
        for ct_data in content.values():
            return True, (ct_data or {}).get("schema")
        return True, None

    # Swagger 2.0
    for p in params:
        if p.get("in") == "body":
            return True, p.get("schema")
    return False, None
