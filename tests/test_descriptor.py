import pytest

from stackwire.aws.dynamo_db import TableConfig
from stackwire.descriptor import ReferenceEdge
from stackwire.exceptions import (
    DescriptorSealedError,
    UnresolvedReferenceError,
    ValidationError,
)
from stackwire.expressions import Format, Ref
from stackwire.kinds import ResourceKind
from stackwire.synth import synthesize

from .builders import api_with_route, function


def test_declare_with_mapping_validates_and_registers(descriptor):
    declaration = descriptor.declare(
        "orders", "Table", {"partition_key_name": "id", "partition_key_type": "STRING"}
    )

    assert declaration.kind is ResourceKind.TABLE
    assert isinstance(declaration.config, TableConfig)
    assert not declaration.generated_attributes
    assert descriptor.get("orders") is declaration
    assert descriptor.declarations == (declaration,)


def test_declare_accepts_config_object(descriptor):
    config = TableConfig(partition_key_name="id", partition_key_type="NUMBER")

    declaration = descriptor.table("orders", config)

    assert declaration.config is config


def test_missing_required_option_names_the_option(descriptor):
    with pytest.raises(ValidationError, match="partition_key_type") as exc_info:
        descriptor.table("orders", partition_key_name="id")

    assert exc_info.value.declaration_id == "orders"
    assert str(exc_info.value).startswith("[orders] missing required option")
    assert descriptor.find("orders") is None


def test_unknown_option_is_rejected(descriptor):
    with pytest.raises(ValidationError, match="unknown option.*'colour'"):
        descriptor.declare("site", ResourceKind.STORAGE, {"colour": "blue"})


@pytest.mark.parametrize(
    ("option", "value"),
    [
        ("encryption", "rot13"),
        ("retention", "forever"),
        ("public_access", "yes"),
    ],
)
def test_out_of_range_storage_option_names_the_option(descriptor, option, value):
    with pytest.raises(ValidationError, match=f"'{option}'") as exc_info:
        descriptor.storage("site", **{option: value})

    assert exc_info.value.declaration_id == "site"


def test_unknown_kind_is_rejected(descriptor):
    with pytest.raises(ValidationError, match="unknown resource kind 'Queue'"):
        descriptor.declare("jobs", "Queue", {})


def test_resource_paths_cannot_be_declared_directly(descriptor):
    with pytest.raises(ValidationError, match="declared by binding routes"):
        descriptor.declare("api-items", ResourceKind.RESOURCE_PATH, {})


def test_duplicate_id_is_rejected(descriptor):
    descriptor.storage("site")

    with pytest.raises(ValidationError, match="already used by a Storage"):
        descriptor.log_group("site")


@pytest.mark.parametrize("declaration_id", ["", "1table", "my_table", "a b", None])
def test_invalid_ids_are_rejected(descriptor, declaration_id):
    with pytest.raises(ValidationError, match="invalid declaration id"):
        descriptor.storage(declaration_id)


def test_config_object_and_options_cannot_be_mixed(descriptor):
    config = TableConfig(partition_key_name="id", partition_key_type="STRING")

    with pytest.raises(ValidationError, match="either a config object or keyword options"):
        descriptor.table("orders", config, billing_mode="PROVISIONED")


def test_grant_same_edge_twice_is_stored_once(descriptor):
    function(descriptor)
    descriptor.table("orders", partition_key_name="id", partition_key_type="STRING")

    descriptor.grant("handler", "orders", {"read", "write"})
    descriptor.grant("handler", "orders", {"read", "write"})

    assert len(descriptor.grants) == 1
    assert descriptor.grants[0].actions == frozenset({"read", "write"})


def test_grants_to_same_pair_merge_actions(descriptor):
    function(descriptor)
    descriptor.storage("uploads")

    descriptor.grant("handler", "uploads", "read")
    edge = descriptor.grant("handler", "uploads", ["write", "list"])

    assert edge.actions == frozenset({"read", "write", "list"})
    assert descriptor.grants == (edge,)


def test_references_include_ref_values_and_structural_edges(descriptor):
    descriptor.table("orders", partition_key_name="id", partition_key_type="STRING")
    descriptor.log_group("logs")
    declaration = function(
        descriptor,
        env_vars={
            "TABLE_NAME": Ref("orders", "name"),
            "TABLE_ARN": Format("arn={}", Ref("orders", "arn")),
        },
        log_group="logs",
    )

    assert descriptor.references(declaration) == [
        ReferenceEdge("handler", "orders", "name"),
        ReferenceEdge("handler", "orders", "arn"),
        ReferenceEdge("handler", "logs", "name"),
    ]


def test_cdn_references_its_origin(descriptor):
    descriptor.storage("site")
    cdn = descriptor.cdn("cdn", origin="site")

    assert {edge.target for edge in descriptor.references(cdn)} == {"site"}


def test_bind_declares_a_resource_path_per_prefix(descriptor):
    function(descriptor)
    api_with_route(descriptor, path="/items/{id}/tags")

    paths = [d for d in descriptor.declarations if d.kind is ResourceKind.RESOURCE_PATH]
    assert [d.id for d in paths] == ["api:/items", "api:/items/{id}", "api:/items/{id}/tags"]
    assert [d.config.parent for d in paths] == [None, "api:/items", "api:/items/{id}"]
    assert descriptor.references(paths[0]) == [
        ReferenceEdge("api:/items", "api", "root_resource_id")
    ]


def test_bind_reuses_existing_resource_paths(descriptor):
    function(descriptor)
    api_with_route(descriptor, path="/items")
    descriptor.bind("api", "/items", "POST", "handler", authorization="iam")

    paths = [d.id for d in descriptor.declarations if d.kind is ResourceKind.RESOURCE_PATH]
    assert paths == ["api:/items"]


@pytest.mark.parametrize("name", ["", "1st", "api-url", None])
def test_invalid_output_names_are_rejected(descriptor, name):
    with pytest.raises(ValidationError, match="invalid output name"):
        descriptor.output(name, Ref("x", "name"))


def test_output_value_must_be_a_reference(descriptor):
    with pytest.raises(ValidationError, match="must be a Ref or Format"):
        descriptor.output("tableName", "orders")


def test_duplicate_output_is_rejected(descriptor):
    descriptor.output("tableName", Ref("orders", "name"))

    with pytest.raises(ValidationError, match="already declared"):
        descriptor.output("tableName", Ref("orders", "arn"))


def test_output_with_dangling_reference_fails_synthesis(descriptor):
    descriptor.log_group("logs")
    descriptor.output("tableName", Ref("orders", "name"))

    with pytest.raises(UnresolvedReferenceError, match="'orders'"):
        synthesize(descriptor)


def test_descriptor_is_sealed_after_synthesis(descriptor):
    descriptor.log_group("logs")

    synthesize(descriptor)

    assert descriptor.sealed
    with pytest.raises(DescriptorSealedError):
        descriptor.storage("site")
    with pytest.raises(DescriptorSealedError):
        descriptor.output("logGroupName", Ref("logs", "name"))
    with pytest.raises(DescriptorSealedError):
        synthesize(descriptor)


def test_grant_and_bind_after_synthesis_are_rejected(descriptor):
    function(descriptor)
    descriptor.log_group("logs")
    api_with_route(descriptor)
    synthesize(descriptor)

    with pytest.raises(DescriptorSealedError):
        descriptor.grant("handler", "logs", "write")
    with pytest.raises(DescriptorSealedError):
        descriptor.bind("api", "/items", "POST", "handler", authorization="iam")


def test_synthesis_records_generated_attributes(descriptor):
    descriptor.log_group("logs")

    synthesize(descriptor)

    attributes = descriptor.get("logs").generated_attributes
    assert set(attributes) == {"name", "arn"}
    with pytest.raises(TypeError):
        attributes["name"] = "changed"


def test_get_unknown_declaration_raises_key_error(descriptor):
    with pytest.raises(KeyError, match="no declaration with id 'missing'"):
        descriptor.get("missing")
