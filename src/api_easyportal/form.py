"""Form derivation — the input fields a user fills in to call one endpoint."""

from pydantic import BaseModel

from api_easyportal.parser.base import BODY_METHODS, EndpointDescriptor
from api_easyportal.parser.schema import flatten_schema

NUMERIC_TYPES = ("integer", "number")


class FormField(BaseModel):
    name: str
    label: str
    required: bool
    input_type: str = "text"  # text / number
    description: str = ""
    is_body: bool = False


def form_fields(endpoint: EndpointDescriptor) -> list[FormField]:
    """Path parameters, then query parameters, then flattened body fields."""
    fields = []

    for p in endpoint.path_params:
        fields.append(
            FormField(name=p.name, label=f"{p.name} (Path)", required=True, description=p.description)
        )

    for p in endpoint.query_params:
        fields.append(
            FormField(name=p.name, label=f"{p.name} (Query)", required=p.required, description=p.description)
        )

    if endpoint.http_method in BODY_METHODS and endpoint.has_request_body:
        for f in flatten_schema(endpoint.request_body_schema, endpoint.schema_definitions):
            fields.append(
                FormField(
                    name=f.name,
                    label=f.name,
                    required=f.required,
                    input_type="number" if f.type in NUMERIC_TYPES else "text",
                    description=f.description,
                    is_body=True,
                )
            )

    return fields


def missing_required(endpoint: EndpointDescriptor, values: dict[str, str]) -> list[str]:
    """Names of required fields that have no (or a blank) value."""
    return [
        f.name for f in form_fields(endpoint)
        if f.required and not str(values.get(f.name, "")).strip()
    ]
