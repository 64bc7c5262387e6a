"""Data models for an imported API description.

The catalog builder converts a raw OpenAPI 3.x / Swagger 2.0 document into
these models; the form builder, schema flattener and request executor all
work off them.
"""

from pydantic import BaseModel, ConfigDict

BODY_METHODS = ("POST", "PUT", "PATCH")  # methods that may carry a JSON body


class SpecDocument(BaseModel):
    """A parsed API description, reduced to what the catalog needs."""

    info: dict = {}
    paths: dict  # {path: {method: operation}}, source key order
    definitions: dict = {}  # legacy `definitions` or `components.schemas`


class ParameterSpec(BaseModel):
    """A path or query parameter of an endpoint."""

    model_config = ConfigDict(frozen=True)

    name: str
    location: str  # path / query
    required: bool
    description: str = ""


class BodyFieldSpec(BaseModel):
    """A single top-level property of a request body schema."""

    name: str
    type: str = "string"
    required: bool = False
    description: str = ""


class EndpointDescriptor(BaseModel):
    """One addressable (method, path) operation of an imported spec."""

    model_config = ConfigDict(frozen=True)

    id: str  # "{method}-{path}", method as written in the source
    path: str  # /users/{id}
    method: str  # as written in the source; upper-cased when sent
    summary: str
    parameters: tuple[ParameterSpec, ...] = ()
    has_request_body: bool = False
    request_body_schema: dict | None = None
    schema_definitions: dict = {}
    tags: tuple[str, ...] = ()

    @property
    def http_method(self) -> str:
        return self.method.upper()

    @property
    def path_params(self) -> list[ParameterSpec]:
        return [p for p in self.parameters if p.location == "path"]

    @property
    def query_params(self) -> list[ParameterSpec]:
        return [p for p in self.parameters if p.location == "query"]
