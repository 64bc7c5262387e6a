from pathlib import Path

import pytest

from api_easyportal.exceptions import EndpointNotFound, SpecInvalid
from api_easyportal.parser.swagger import (
    build_catalog,
    filter_endpoints,
    find_endpoint,
    load_spec,
    load_spec_file,
)

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def petstore():
    return build_catalog(load_spec_file(FIXTURES / "petstore.json"))


class TestLoadSpec:
    def test_malformed_json_raises_spec_invalid(self):
        with pytest.raises(SpecInvalid) as exc:
            load_spec('{"paths": {')
        assert str(exc.value)

    def test_missing_paths_raises_spec_invalid(self):
        with pytest.raises(SpecInvalid, match="Missing 'paths'"):
            load_spec('{"openapi": "3.0.0", "info": {}}')

    def test_non_object_document_raises(self):
        with pytest.raises(SpecInvalid):
            load_spec("[1, 2, 3]")

    def test_plain_text_raises(self):
        with pytest.raises(SpecInvalid):
            load_spec("just some words")

    def test_yaml_without_paths_reports_json_error(self):
        with pytest.raises(SpecInvalid) as exc:
            load_spec("paths: x")
        assert "Expecting value" in str(exc.value)
        assert "Missing" not in str(exc.value)

    def test_yaml_document_accepted(self):
        doc = load_spec_file(FIXTURES / "swagger2.yaml")
        assert "/users" in doc.paths
        assert doc.info["title"] == "Users"

    def test_legacy_definitions_preferred(self):
        doc = load_spec(
            '{"paths": {}, "definitions": {"A": {}}, "components": {"schemas": {"B": {}}}}'
        )
        assert list(doc.definitions) == ["A"]

    def test_components_schemas_fallback(self):
        doc = load_spec('{"paths": {}, "components": {"schemas": {"B": {}}}}')
        assert list(doc.definitions) == ["B"]

    def test_no_definitions_is_empty(self):
        assert load_spec('{"paths": {}}').definitions == {}


class TestBuildCatalog:
    def test_counts_only_recognized_verbs(self, petstore):
        assert len(petstore) == 5

    def test_ids_are_unique(self, petstore):
        ids = [ep.id for ep in petstore]
        assert len(ids) == len(set(ids))

    def test_source_order_preserved(self, petstore):
        assert [ep.id for ep in petstore] == [
            "get-/pets",
            "post-/pets",
            "get-/pets/{petId}",
            "PUT-/pets/{petId}",
            "delete-/pets/{petId}",
        ]

    def test_summary_fallbacks(self, petstore):
        by_id = {ep.id: ep for ep in petstore}
        assert by_id["get-/pets"].summary == "List all pets"
        assert by_id["post-/pets"].summary == "createPet"
        assert by_id["delete-/pets/{petId}"].summary == "/pets/{petId}"

    def test_query_params(self, petstore):
        get_pets = petstore[0]
        assert [p.name for p in get_pets.parameters] == ["limit", "status"]
        assert get_pets.parameters[0].required is False
        assert get_pets.parameters[0].description == "How many items to return"

    def test_path_level_param_always_required(self, petstore):
        get_pet = petstore[2]
        assert get_pet.parameters[0].name == "petId"
        assert get_pet.parameters[0].location == "path"
        assert get_pet.parameters[0].required is True

    def test_header_params_dropped(self, petstore):
        put_pet = petstore[3]
        assert [p.name for p in put_pet.parameters] == ["petId"]

    def test_request_body_ref_and_definitions_attached(self, petstore):
        post_pets = petstore[1]
        assert post_pets.has_request_body is True
        assert post_pets.request_body_schema == {"$ref": "#/components/schemas/NewPet"}
        assert "NewPet" in post_pets.schema_definitions

    def test_swagger2_body_parameter(self):
        endpoints = build_catalog(load_spec_file(FIXTURES / "swagger2.yaml"))
        assert len(endpoints) == 2
        create = [e for e in endpoints if e.method == "post"][0]
        assert create.has_request_body is True
        assert create.request_body_schema == {"$ref": "#/definitions/User"}
        assert create.parameters == ()
        assert "User" in create.schema_definitions

    def test_request_body_without_json_schema(self):
        doc = load_spec(
            '{"paths": {"/upload": {"post": {"requestBody": {"content": {}}}}}}'
        )
        upload = build_catalog(doc)[0]
        assert upload.has_request_body is True
        assert upload.request_body_schema is None

    def test_rebuild_produces_same_ids(self):
        first = build_catalog(load_spec_file(FIXTURES / "petstore.json"))
        second = build_catalog(load_spec_file(FIXTURES / "petstore.json"))
        assert [e.id for e in first] == [e.id for e in second]


class TestFilterEndpoints:
    def test_matches_path_case_insensitive(self, petstore):
        result = filter_endpoints(petstore, "PETID")
        assert len(result) == 3

    def test_matches_summary(self, petstore):
        result = filter_endpoints(petstore, "list all")
        assert [e.id for e in result] == ["get-/pets"]

    def test_matches_tag(self):
        doc = load_spec('{"paths": {"/v1/keys": {"get": {"summary": "Rotate", "tags": ["Admin"]}}, "/v1/me": {"get": {}}}}')
        result = filter_endpoints(build_catalog(doc), "admin")
        assert [e.path for e in result] == ["/v1/keys"]

    def test_empty_search_returns_all(self, petstore):
        assert len(filter_endpoints(petstore, "  ")) == 5

    def test_no_match(self, petstore):
        assert filter_endpoints(petstore, "orders") == []


class TestFindEndpoint:
    def test_find_by_id(self, petstore):
        assert find_endpoint(petstore, "PUT-/pets/{petId}").summary == "Update a pet"

    def test_find_by_method_and_path(self, petstore):
        ep = find_endpoint(petstore, "put /pets/{petId}")
        assert ep.id == "PUT-/pets/{petId}"

    def test_not_found(self, petstore):
        with pytest.raises(EndpointNotFound):
            find_endpoint(petstore, "DELETE /orders")
