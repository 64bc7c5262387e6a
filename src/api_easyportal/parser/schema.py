"""Request-body schema flattening.

A body schema is either a reference into the document's definitions or an
inline object schema. Only one level of reference is followed and nested
object/array properties are reported as a single field of their declared type.
"""

from pydantic import BaseModel

from .base import BodyFieldSpec


class SchemaRef(BaseModel):
    """A `$ref` pointer, e.g. `#/components/schemas/Pet`."""

    ref: str

    @property
    def name(self) -> str:
        return self.ref.split("/")[-1]


class InlineSchema(BaseModel):
    properties: dict = {}
    required: list[str] = []


def parse_schema(schema: dict) -> SchemaRef | InlineSchema:
    """Classify a raw schema mapping as a reference or an inline schema."""
    if "$ref" in schema:
        return SchemaRef(ref=str(schema["$ref"]))
    return InlineSchema(
        properties=schema.get("properties") or {},
        required=list(schema.get("required") or []),
    )


def resolve_schema(schema: SchemaRef | InlineSchema, definitions: dict | None) -> InlineSchema:
    """Resolve a reference one level deep. Unknown targets resolve to an empty schema."""
    if isinstance(schema, InlineSchema):
        return schema
    target = (definitions or {}).get(schema.name)
    if not isinstance(target, dict):
        return InlineSchema()
    return InlineSchema(
        properties=target.get("properties") or {},
        required=list(target.get("required") or []),
    )


def _field_type(prop: dict) -> str:
    declared = prop.get("type")
    if isinstance(declared, list):  # OpenAPI 3.1: ["string", "null"]
        declared = next((t for t in declared if t != "null"), None)
    return str(declared) if declared else "string"


def flatten_schema(schema: dict | None, definitions: dict | None = None) -> list[BodyFieldSpec]:
    """Reduce a request schema to its top-level fields, in declaration order."""
    if not schema:
        return []

    resolved = resolve_schema(parse_schema(schema), definitions)
    fields = []
    for name, prop in resolved.properties.items():
        prop = prop if isinstance(prop, dict) else {}
        fields.append(
            BodyFieldSpec(
                name=name,
                type=_field_type(prop),
                required=name in resolved.required,
                description=prop.get("description") or "",
            )
        )
    return fields
